from __future__ import annotations

import logging
from typing import Any

from google.oauth2.service_account import Credentials as ServiceAccountCredentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.core.config import Settings, get_settings
from app.services.instagram.scrape import ScrapeConfigurationError, ScrapeLaunchError, ScrapeLauncher

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsQueueError(ScrapeLaunchError):
    """Writing the scrape target into the queue sheet failed."""


def build_sheets_service(client_email: str, private_key: str) -> Any:
    info = {
        "type": "service_account",
        "client_email": client_email,
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": TOKEN_URI,
    }
    creds = ServiceAccountCredentials.from_service_account_info(info, scopes=SCOPES)
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


class SheetsJobQueue(ScrapeLauncher):
    """Queues a scrape by overwriting the fixed input range Phantom Buster reads from."""

    name = "sheets"

    def __init__(
        self,
        spreadsheet_id: str | None,
        cell_range: str = "Sheet1!A2:B2",
        *,
        service: Any = None,
        client_email: str | None = None,
        private_key: str | None = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.cell_range = cell_range
        self._service = service
        self._client_email = client_email
        self._private_key = private_key

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SheetsJobQueue":
        settings = settings or get_settings()
        return cls(
            settings.google_sheet_id,
            settings.google_sheet_range,
            client_email=settings.google_client_email,
            private_key=settings.google_private_key,
        )

    @property
    def service(self) -> Any:
        if self._service is not None:
            return self._service

        missing = [
            name
            for name, value in (
                ("GOOGLE_CLIENT_EMAIL", self._client_email),
                ("GOOGLE_PRIVATE_KEY", self._private_key),
            )
            if not value
        ]
        if missing:
            raise ScrapeConfigurationError(f"Google Sheets queue is not configured: missing {', '.join(missing)}")
        try:
            self._service = build_sheets_service(self._client_email, self._private_key)
        except ValueError as exc:
            raise ScrapeConfigurationError(f"Invalid Google service account credentials: {exc}") from exc
        return self._service

    def enqueue(self, post_url: str, post_id: int | None = None) -> dict[str, Any]:
        if not self.spreadsheet_id:
            raise ScrapeConfigurationError("Google Sheets queue is not configured: missing GOOGLE_SHEET_ID")

        # The id cell is always written, blank when there is no post id.
        row: list[Any] = [post_url, "" if post_id is None else post_id]
        try:
            response = (
                self.service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self.spreadsheet_id,
                    range=self.cell_range,
                    valueInputOption="RAW",
                    body={"values": [row]},
                )
                .execute()
            )
        except HttpError as exc:
            raise SheetsQueueError(
                f"Failed to update sheet {self.spreadsheet_id}: {exc}",
                status_code=getattr(exc.resp, "status", None),
                body=exc.content,
            ) from exc
        logger.info("Queued %s in sheet %s range %s", post_url, self.spreadsheet_id, self.cell_range)
        return response or {}

    def launch(self, post_url: str, post_id: int | None = None) -> dict[str, Any]:
        return self.enqueue(post_url, post_id)
