"""
Smoke tests to verify all modules can be imported.
"""

def test_import_sandbox():
    import sandbox
    assert hasattr(sandbox, '__version__')


def test_import_practice():
    import practice
    assert hasattr(practice, '__version__')


def test_import_store():
    import store
    assert hasattr(store, '__version__')
