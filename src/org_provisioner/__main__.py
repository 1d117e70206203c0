"""Serve the provisioner API with uvicorn.

Usage:
    PORT=8080 ENVIRONMENT=local python -m org_provisioner
"""

import os

import uvicorn

from .main import create_app
from .observability.logging import configure_logging
from .settings import ProvisionerSettings


def main():
    configure_logging()
    port = int(os.environ.get("PORT", "8080"))
    host = os.environ.get("HOST", "127.0.0.1")
    app = create_app(ProvisionerSettings.from_env())
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
