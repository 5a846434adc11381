from tests.fixtures.app_fixtures import (  # noqa: F401
    app,
    auth_headers,
    client,
    settings,
    storage_dir,
)
