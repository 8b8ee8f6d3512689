import pytest

from triage_forms.template import TemplateStore


@pytest.fixture(scope="session")
def templates():
    """Load the repository's templates/ once for the entire test session."""
    store = TemplateStore()
    store.load()
    return store


@pytest.fixture(scope="session")
def triage_template(templates):
    return templates.get("triage-v1")
