"""
Project id resolution through Application Default Credentials.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import google.auth
from google.auth.exceptions import DefaultCredentialsError

from .logging import get_logger

logger = get_logger("cloudlog.auth")

LOGGING_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/logging.write",
    "https://www.googleapis.com/auth/logging.read",
)


class GoogleAuthProjectIdResolver:
    """`ProjectIdResolver` over `google.auth.default()`.

    An explicit project id short-circuits credential discovery.
    """

    def __init__(self, project_id: Optional[str] = None, scopes: Sequence[str] = LOGGING_SCOPES) -> None:
        self._project_id = project_id
        self._scopes = list(scopes)
        self.credentials = None

    async def get_project_id(self) -> str:
        if self._project_id:
            return self._project_id

        # google.auth.default() may hit the metadata server; keep it off the loop
        credentials, project = await asyncio.to_thread(google.auth.default, scopes=self._scopes)
        if not project:
            raise DefaultCredentialsError(
                "Unable to determine the project id from Application Default Credentials. "
                "Set CLOUDLOG_PROJECT_ID or pass project_id explicitly."
            )
        self.credentials = credentials
        self._project_id = project
        logger.debug("project_id_resolved", project_id=project)
        return project
