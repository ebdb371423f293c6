"""Point the application at a throwaway SQLite file before anything imports it."""

import os
import sys
import tempfile
from pathlib import Path

# A shared file DB so the app's sessions and the tests' session see the same data
_test_db_file = tempfile.NamedTemporaryFile(suffix=".sqlite", delete=False)
_test_db_file.close()
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_file.name}"
os.environ["SECRET_KEY"] = "test-secret-key"
for _name in ("MERCURY_API_TOKEN", "BOOTSTRAP_ADMIN_EMAIL", "BOOTSTRAP_ADMIN_PASSWORD"):
    os.environ.pop(_name, None)

# Allow importing labsupply when running from the project root without installing
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def pytest_sessionfinish(session, exitstatus):
    try:
        os.unlink(_test_db_file.name)
    except OSError:
        pass
