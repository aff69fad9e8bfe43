"""Seal REST API backend implementation using httpx."""

import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

import google_crc32c
import httpx
import structlog
from pydantic import ValidationError

from seal_link.backend import Backend
from seal_link.errors import ApiError, LinkError
from seal_link.models import ArchiveOutcome, ChangeSet, ExternalEntity, FileReference
from seal_link.schemas import ChangeSetSchema, EntitySchema, UploadResponseSchema

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024


def normalize_api_url(url: str) -> str:
    """Ensure an API base URL ends with a slash."""
    return url if url.endswith("/") else f"{url}/"


def calculate_crc32c(path: Path) -> str:
    """Calculate the CRC32C of a file as an unsigned decimal string."""
    checksum = google_crc32c.Checksum()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            checksum.update(chunk)
    return str(int.from_bytes(checksum.digest(), "big"))


class SealBackend(Backend):
    """Backend talking to the Seal REST API."""

    def __init__(
        self,
        api_base_url: str,
        token: str,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Seal backend.

        Args:
            api_base_url: Base URL of the API, e.g. https://us.backend.seal.run/api/
            token: Seal API token
            timeout: Request timeout in seconds (httpx default when None)
            transport: Custom httpx transport, used by tests
        """
        token = (token or "").strip()
        if not token:
            raise ValueError("Seal API token required")
        if not api_base_url:
            raise ValueError("Seal API base URL required")

        self.api_base_url = normalize_api_url(api_base_url)
        client_kwargs: dict[str, Any] = {}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        if transport is not None:
            client_kwargs["transport"] = transport

        self.client = httpx.Client(
            base_url=self.api_base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            **client_kwargs,
        )
        logger.debug("Seal backend initialized", api_base_url=self.api_base_url)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SealBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, translating transport errors into ApiError."""
        logger.debug("Sending API request", operation=operation, method=method, url=url, params=kwargs.get("params"))
        started = time.monotonic()
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("API request failed", operation=operation, error=str(e))
            raise ApiError(operation, f"Request failed: {e}") from e

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("API response received", operation=operation, status=response.status_code, duration_ms=duration_ms)
        return response

    def _check_status(self, operation: str, response: httpx.Response, expected: tuple[int, ...] = (200,)) -> None:
        if response.status_code not in expected:
            logger.error("Unexpected API status", operation=operation, status=response.status_code, body=response.text)
            raise ApiError(
                operation,
                f"Seal API returned status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

    def _json(self, operation: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error("API response is not JSON", operation=operation, body=response.text)
            raise ApiError(operation, "Response body is not valid JSON", response.status_code, response.text) from e

    def search_entities(self, title_contains: str) -> list[ExternalEntity]:
        """Search entities whose title contains a substring."""
        operation = "search_entities"
        response = self._request(operation, "GET", "entities/search", params={"titleContains": title_contains})
        self._check_status(operation, response)

        data = self._json(operation, response)
        if not isinstance(data, list):
            logger.error("Search response was not an array", body=response.text)
            raise ApiError(operation, "Invalid response format from Seal API search", response.status_code, response.text)

        try:
            entities = [EntitySchema.model_validate(item).to_model() for item in data]
        except ValidationError as e:
            raise ApiError(operation, f"Invalid entity in search results: {e}", response.status_code) from e

        logger.debug("Search results parsed", count=len(entities))
        return entities

    def get_entity(self, entity_id: str) -> ExternalEntity:
        """Read an entity by ID."""
        operation = "get_entity"
        response = self._request(operation, "GET", f"entities/{entity_id}")
        self._check_status(operation, response)
        try:
            return EntitySchema.model_validate(self._json(operation, response)).to_model()
        except ValidationError as e:
            raise ApiError(operation, f"Invalid entity response: {e}", response.status_code) from e

    def get_change_set(self, entity_id: str) -> ChangeSet:
        """Get the change-set an entity belongs to."""
        operation = "get_change_set"
        logger.info("Getting change-set", entity_id=entity_id)
        response = self._request(operation, "GET", f"entities/{entity_id}/change-set")
        self._check_status(operation, response)
        try:
            change_set = ChangeSetSchema.model_validate(self._json(operation, response)).to_model()
        except ValidationError as e:
            logger.error("Missing or invalid change-set index", body=response.text)
            raise ApiError(operation, "Missing or invalid change-set index in API response", response.status_code) from e

        logger.info("Found change-set", entity_id=entity_id, index=change_set.index, status=change_set.status)
        return change_set

    def add_to_change_set(self, entity_id: str, change_set_index: str) -> None:
        """Add an entity to a change-set."""
        operation = "add_to_change_set"
        logger.info("Adding entity to change-set", entity_id=entity_id, change_set_index=change_set_index)
        response = self._request(
            operation,
            "POST",
            f"entities/{entity_id}/add-to-change-set",
            json={"changeSetIndex": change_set_index},
        )
        self._check_status(operation, response)

    def upload_file(self, path: Path, remote_name: str, file_type_title: str) -> str:
        """Upload a local file as a new file entity and return its ID."""
        operation = "upload_file"
        path = Path(path)
        logger.info("Uploading file", path=path.name, remote_name=remote_name, file_type_title=file_type_title)

        try:
            crc32c_hash = calculate_crc32c(path)
            logger.debug("Calculated CRC32C", path=path.name, crc32c=crc32c_hash)
            with open(path, "rb") as stream:
                response = self._request(
                    operation,
                    "POST",
                    "files",
                    params={"filename": remote_name, "typeTitle": file_type_title, "crc32cHash": crc32c_hash},
                    content=stream,
                    headers={"Content-Type": "application/octet-stream"},
                )
        except OSError as e:
            logger.error("Failed to read file for upload", path=str(path), error=str(e))
            raise ApiError(operation, f"Could not read {path}: {e}") from e

        self._check_status(operation, response, expected=(200, 201))
        try:
            file_id = UploadResponseSchema.model_validate(self._json(operation, response)).id
        except ValidationError as e:
            logger.error("Missing file ID in upload response", body=response.text)
            raise ApiError(operation, "Missing file ID in Seal API response after upload", response.status_code) from e

        logger.info("File uploaded", remote_name=remote_name, file_id=file_id)
        return file_id

    def get_file_version(self, file_id: str) -> int | None:
        """Get the version of a file entity.

        Failures are logged and reported as None, which links the latest version.
        """
        operation = "get_file_version"
        try:
            response = self._request(operation, "GET", f"entities/{file_id}")
        except ApiError as e:
            logger.error("Failed to fetch file entity, using version=null", file_id=file_id, error=str(e))
            return None

        if response.status_code != 200:
            logger.warning(
                "Failed to fetch file entity, using version=null",
                file_id=file_id,
                status=response.status_code,
                body=response.text,
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("File entity response is not JSON, using version=null", file_id=file_id)
            return None

        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, int) or isinstance(version, bool):
            logger.debug("No usable version in file entity, using version=null", file_id=file_id, version=version)
            return None

        logger.debug("Extracted file version", file_id=file_id, version=version)
        return version

    def patch_reference_field(self, entity_id: str, field_name: str, references: list[FileReference]) -> None:
        """Replace the value of a reference field with the given references."""
        operation = "patch_reference_field"
        file_ids = [ref.id for ref in references]
        payload = {"value": [ref.to_payload() for ref in references]}
        logger.info("Linking files to entity field", entity_id=entity_id, field_name=field_name, count=len(references))
        logger.debug("Link payload", payload=payload)

        try:
            response = self._request(
                operation,
                "PATCH",
                f"entities/{entity_id}/fields/{quote(field_name, safe='')}",
                json=payload,
            )
        except ApiError as e:
            raise LinkError(f"Failed to link files to entity field '{field_name}': {e}", file_ids) from e

        if response.status_code != 200:
            logger.error("Linking failed", status=response.status_code, body=response.text)
            raise LinkError(
                f"Seal API linking failed with status {response.status_code}: {response.text}",
                file_ids,
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("message"):
            logger.warning("Linking returned a message, check the entity", message=data["message"], entity_id=entity_id)
        else:
            logger.info("Files linked", entity_id=entity_id, field_name=field_name, count=len(references))

    def archive_entity(self, entity_id: str) -> ArchiveOutcome:
        """Archive an entity. Never raises."""
        operation = "archive_entity"
        try:
            response = self._request(operation, "POST", f"entities/{entity_id}/archive")
        except ApiError as e:
            logger.error("Failed to archive entity", entity_id=entity_id, error=str(e))
            return ArchiveOutcome(entity_id=entity_id, status="failed", error=str(e))

        if response.status_code != 200:
            logger.warning("Archiving returned non-200 status", entity_id=entity_id, status=response.status_code)
            return ArchiveOutcome(entity_id=entity_id, status="failed", error=f"Status {response.status_code}")

        logger.info("Entity archived", entity_id=entity_id)
        return ArchiveOutcome(entity_id=entity_id, status="success")
