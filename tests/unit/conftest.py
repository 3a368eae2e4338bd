"""
Shared fixtures for unit tests.
"""

import os
import tempfile

import pytest
import pytest_asyncio
from casbin.model import Model

from casbin_store.adapter import Adapter


RBAC_MODEL = """
[request_definition]
r = sub, obj, act

[policy_definition]
p = sub, obj, act

[role_definition]
g = _, _

[policy_effect]
e = some(where (p.eft == allow))

[matchers]
m = g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act
"""


@pytest.fixture
def db_url():
    """URL of a temporary SQLite database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "test.db")
        yield f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture
async def adapter(db_url):
    """Create an adapter on a temporary database."""
    adapter = await Adapter.new_adapter(db_url, db_specified=True)
    yield adapter
    await adapter.close()


@pytest.fixture
def rbac_model():
    """Create an empty RBAC model."""
    model = Model()
    model.load_model_from_text(RBAC_MODEL)
    return model


@pytest.fixture
def rbac_model_text():
    """Text of the RBAC model definition."""
    return RBAC_MODEL
