# Make 'main' and 'repo' importable and point the engine at a throwaway DB
import os
import sys
import tempfile
from pathlib import Path

import pytest

SERVICE_DIR = Path(__file__).resolve().parent.parent
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/sandbox_gateway.db")
os.environ.setdefault("SANDBOX_AUTO_CONFIRM", "1")
p = str(SERVICE_DIR)
if p not in sys.path:
    sys.path.insert(0, p)


@pytest.fixture
def api():
    from fastapi.testclient import TestClient

    import main

    return TestClient(main.app)


@pytest.fixture
def auth():
    return {"Authorization": "Bearer sk_test_sandbox"}
