import pytest

from symgrad import use_graph


@pytest.fixture(autouse=True)
def graph():
    """Every test builds into its own default graph."""
    with use_graph() as g:
        yield g
