"""
Remote operations used by the import pipeline.

``ImportRpcClient`` names the operations the pipeline depends on;
``HttpImportRpcClient`` implements them against the collaborator's HTTP
API with httpx. Every failure to obtain a usable reply is raised as
``RemoteUnavailable``; a well-formed ``success: false`` reply is returned
to the caller untouched.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from entity_import.api.dependencies import IDENTITY_HEADER
from entity_import.api.schemas.shared import (
    ColumnMapping,
    CommitResponse,
    MappingCatalog,
    ReviewResponse,
)
from entity_import.core.config import settings
from entity_import.domain.pipeline.errors import RemoteUnavailable
from entity_import.domain.pipeline.intake import StagedFile

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_HEADERS_ADAPTER = TypeAdapter(List[str])


class ImportRpcClient(Protocol):
    async def extract_headers(self, file: StagedFile) -> List[str]: ...

    async def fetch_mapping_catalog(self) -> MappingCatalog: ...

    async def review_tabular(self, mapping: ColumnMapping, file: StagedFile) -> ReviewResponse: ...

    async def review_hierarchical(self, file: StagedFile) -> ReviewResponse: ...

    async def commit_tabular(self, mapping: ColumnMapping, file: StagedFile) -> CommitResponse: ...

    async def commit_hierarchical(self, file: StagedFile, project_id: Optional[str]) -> CommitResponse: ...

    async def commit_templates(self, file: StagedFile) -> CommitResponse: ...


class HttpImportRpcClient:
    """httpx implementation of :class:`ImportRpcClient`."""

    def __init__(
        self,
        identity: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.identity = identity
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            headers={IDENTITY_HEADER: identity},
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpImportRpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    def _upload(file: StagedFile) -> Dict[str, Any]:
        return {"file": (file.name, file.content, file.mime_type)}

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200]
            logger.warning("%s returned HTTP %d: %s", operation, e.response.status_code, detail)
            raise RemoteUnavailable(operation, f"Server responded with {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("%s request failed: %s", operation, e)
            raise RemoteUnavailable(operation, f"Could not reach the import service: {e}") from e
        except ValueError as e:
            logger.warning("%s returned a body that is not JSON: %s", operation, e)
            raise RemoteUnavailable(operation, "Import service returned an invalid response") from e

    @staticmethod
    def _parse(operation: str, model: Type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.warning("%s returned an unexpected payload: %s", operation, e)
            raise RemoteUnavailable(operation, "Import service returned an invalid response") from e

    async def extract_headers(self, file: StagedFile) -> List[str]:
        payload = await self._request("extract_headers", "POST", "/prepare-csv", files=self._upload(file))
        try:
            return _HEADERS_ADAPTER.validate_python(payload)
        except ValidationError as e:
            raise RemoteUnavailable("extract_headers", "Import service returned an invalid response") from e

    async def fetch_mapping_catalog(self) -> MappingCatalog:
        payload = await self._request("fetch_mapping_catalog", "GET", "/mapping-data")
        return self._parse("fetch_mapping_catalog", MappingCatalog, payload)

    async def review_tabular(self, mapping: ColumnMapping, file: StagedFile) -> ReviewResponse:
        payload = await self._request(
            "review_tabular",
            "POST",
            "/review-csv",
            files=self._upload(file),
            data={"column_mapping": mapping.model_dump_json()},
        )
        return self._parse("review_tabular", ReviewResponse, payload)

    async def review_hierarchical(self, file: StagedFile) -> ReviewResponse:
        payload = await self._request("review_hierarchical", "POST", "/review-json", files=self._upload(file))
        return self._parse("review_hierarchical", ReviewResponse, payload)

    async def commit_tabular(self, mapping: ColumnMapping, file: StagedFile) -> CommitResponse:
        payload = await self._request(
            "commit_tabular",
            "POST",
            "/import-csv",
            files=self._upload(file),
            data={"column_mapping": mapping.model_dump_json()},
        )
        return self._parse("commit_tabular", CommitResponse, payload)

    async def commit_hierarchical(self, file: StagedFile, project_id: Optional[str]) -> CommitResponse:
        data = {"project": project_id} if project_id else {}
        payload = await self._request(
            "commit_hierarchical",
            "POST",
            "/import-json",
            files=self._upload(file),
            data=data,
        )
        return self._parse("commit_hierarchical", CommitResponse, payload)

    async def commit_templates(self, file: StagedFile) -> CommitResponse:
        payload = await self._request("commit_templates", "POST", "/import-templates", files=self._upload(file))
        return self._parse("commit_templates", CommitResponse, payload)
