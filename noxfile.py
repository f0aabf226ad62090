import nox.sessions

PYTHON_VERSIONS = ['3.7', '3.8', '3.9', '3.10', '3.11', '3.12']
PYMONGO_VERSIONS = ['3.11.4', '3.12.3', '3.13.0', '4.0.2', '4.3.3', '4.6.3']


nox.options.reuse_existing_virtualenvs = True
nox.options.sessions = [
    'tests',
    'tests_pymongo',
]


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.sessions.Session, pymongo=None):
    """ Run all tests """
    session.install('-e', '.[test]')

    # Specific package versions
    if pymongo:
        session.install(f'pymongo=={pymongo}')

    # Test
    session.run('pytest', 'tests/', '--cov=mongopage')


@nox.session(python=PYTHON_VERSIONS[-1])
@nox.parametrize('pymongo', PYMONGO_VERSIONS)
def tests_pymongo(session: nox.sessions.Session, pymongo):
    """ Test against a specific pymongo version """
    tests(session, pymongo)
