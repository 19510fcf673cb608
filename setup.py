from setuptools import setup, find_packages
import sys
import os.path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'vswfbeams'))
from _version import hardcoded  # We cannot import the _version module, but we can import from it.

with hardcoded() as version:
    setup(
        name='vswfbeams',
        version=version,
        description='Beam shape coefficients for vector spherical wave function expansions of optical beams',
        long_description=open('README.rst').read(),
        long_description_content_type='text/x-rst',
        license='MIT',
        packages=find_packages('.', exclude=['tests']),
        python_requires='>=3.10',
        install_requires=[
            'numpy',
            'scipy>=1.15'],
        extras_require={'test': ['pytest', 'pytest-cov']},
        include_package_data=True,
    )
