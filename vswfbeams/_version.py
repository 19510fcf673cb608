import subprocess
import os.path
import contextlib

default_version = '0.1.0'
"""Version used when the source tree has no git metadata."""


def git_version():
    """Get the package version from git tags."""
    d = os.path.dirname(__file__)
    cmd = ['git', 'describe', '--tags', '--dirty', '--always']
    try:
        p_out = subprocess.run(cmd, cwd=d, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)
    except (subprocess.CalledProcessError, OSError):
        return {'short': None}

    description = p_out.stdout.decode().strip().lstrip('Vversion')
    parts = description.split('-')
    if len(parts) == 1 and not parts[0][:1].isdigit():
        # Only a commit hash, no tags in the repository.
        return {'short': None, 'git revision': parts[0]}
    version = {'short': parts[0]}
    version['full'] = '+'.join([parts[0], '.'.join(parts[1:])]) if len(parts) > 1 else parts[0]
    version['release'] = '.g' not in version['full']
    version['clean'] = 'dirty' not in version['full']
    return version


version_info = git_version()
if version_info['short'] is None:
    version_info['short'] = default_version
    version_info['release'] = False
version = version_info['short']


packaged_contents = \
f'''"""File generated while packaging."""
import contextlib

version_info = {version_info}
version_info['packaged'] = True
version = '{version}'


@contextlib.contextmanager
def hardcoded():
    """Returns the frozen version."""
    yield version
'''

version_info['packaged'] = False


@contextlib.contextmanager
def hardcoded():
    """Freeze the version into this file while `setup.py` runs."""
    with open(__file__, 'r') as f:
        contents = f.read()
    with open(__file__, 'w') as f:
        f.write(packaged_contents)
    try:
        yield version
    finally:
        with open(__file__, 'w') as f:
            f.write(contents)
