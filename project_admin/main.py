"""
Application entry point.

Validates the environment, builds the application and serves it with uvicorn.

    project-admin                                         # console script
    uvicorn project_admin.main:create_app --factory       # uvicorn factory mode

The process takes no arguments; everything is configured through environment
variables (see `project_admin/config/environment.py`).
"""
import sys

import uvicorn
from fastapi import FastAPI

from project_admin.core.application import create_application
from project_admin.core.setup import setup_application
from project_admin.utils.errors import ConfigurationError

CONFIGURATION_ERROR_EXIT_CODE = 1


def create_app() -> FastAPI:
    """Validate the environment and create the application."""
    settings = setup_application()
    return create_application(settings)


def run() -> None:
    """Console entry point: exits non-zero if the environment is invalid."""
    try:
        settings = setup_application()
    except ConfigurationError:
        sys.exit(CONFIGURATION_ERROR_EXIT_CODE)

    app = create_application(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
