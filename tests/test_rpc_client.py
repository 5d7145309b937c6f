"""
HTTP client tests: against the collaborator app in-process, and against
mock transports for failure replies.
"""
import httpx
import pytest

from entity_import.api.schemas.shared import AttributeValue, ImportSubject
from entity_import.db.models import Entity, Template
from entity_import.domain.pipeline.controller import ImportSession
from entity_import.domain.pipeline.errors import RemoteUnavailable
from entity_import.domain.pipeline.intake import stage_file
from entity_import.integrations.rpc import HttpImportRpcClient
from entity_import.main import app

IDENTITY = "0000-0002-1825-0097"

CSV_CONTENT = b"Name,Notes,,Width\nSample A,first,x,3\n"


def _app_client():
    return HttpImportRpcClient(IDENTITY, base_url="http://testserver", transport=httpx.ASGITransport(app=app))


def _mock_client(handler):
    return HttpImportRpcClient(IDENTITY, base_url="http://testserver", transport=httpx.MockTransport(handler))


def _csv_file():
    return stage_file(ImportSubject.ENTITIES, "sample.csv", "text/csv", CSV_CONTENT)


class RecordingHost:
    def __init__(self):
        self.events = []

    def close(self):
        self.events.append("close")

    def reload(self):
        self.events.append("reload")


@pytest.mark.asyncio
async def test_extract_headers_over_http(override_db):
    async with _app_client() as client:
        headers = await client.extract_headers(_csv_file())

    assert headers == ["Name", "Notes", "__EMPTY", "Width"]


@pytest.mark.asyncio
async def test_fetch_catalog_over_http(override_db, seeded):
    async with _app_client() as client:
        catalog = await client.fetch_mapping_catalog()

    assert [project.name for project in catalog.projects] == ["Field Study"]
    assert [template.id for template in catalog.templates] == ["t1"]


@pytest.mark.asyncio
async def test_identity_header_is_sent():
    seen = {}

    def handler(request):
        seen["identity"] = request.headers.get("X-User-Identity")
        return httpx.Response(200, json={"projects": [], "templates": []})

    async with _mock_client(handler) as client:
        await client.fetch_mapping_catalog()

    assert seen["identity"] == IDENTITY


@pytest.mark.asyncio
async def test_project_is_omitted_when_unset():
    bodies = []

    def handler(request):
        bodies.append(request.content)
        return httpx.Response(200, json={"success": True, "message": "Imported 1 entities"})

    staged = stage_file(ImportSubject.ENTITIES, "e.json", "application/json", b'[{"name": "Sample A"}]')
    async with _mock_client(handler) as client:
        await client.commit_hierarchical(staged, None)
        await client.commit_hierarchical(staged, "p1")

    assert b'name="project"' not in bodies[0]
    assert b'name="project"' in bodies[1]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="Internal Server Error"),
        httpx.Response(401, json={"detail": "Missing X-User-Identity header"}),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"unexpected": True}),
    ],
)
async def test_unusable_replies_raise_remote_unavailable(response):
    async with _mock_client(lambda request: response) as client:
        with pytest.raises(RemoteUnavailable) as exc_info:
            await client.review_hierarchical(
                stage_file(ImportSubject.ENTITIES, "e.json", "application/json", b"[]")
            )

    assert exc_info.value.operation == "review_hierarchical"


@pytest.mark.asyncio
async def test_transport_errors_raise_remote_unavailable():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    async with _mock_client(handler) as client:
        with pytest.raises(RemoteUnavailable):
            await client.extract_headers(_csv_file())


@pytest.mark.asyncio
async def test_success_false_is_returned_untouched():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "Invalid JSON file"})

    async with _mock_client(handler) as client:
        reply = await client.commit_templates(
            stage_file(ImportSubject.TEMPLATE, "t.json", "application/json", b'{"name": "Size"}')
        )

    assert reply.success is False
    assert reply.message == "Invalid JSON file"


@pytest.mark.asyncio
async def test_csv_session_end_to_end(override_db, seeded, db_session):
    host = RecordingHost()
    async with _app_client() as client:
        session = ImportSession(client, IDENTITY, host=host)
        assert session.select_file("sample.csv", "text/csv", CSV_CONTENT)

        assert await session.advance()
        assert session.columns == ["Name", "Notes", "Width"]
        session.set_name_field("Name")
        session.set_description_field("Notes")
        session.set_project_field("p1")
        assert await session.advance()

        attribute_id = session.add_template("t1")
        session.update_attribute(
            attribute_id,
            values=[AttributeValue(id="v1", name="Width", type="number", data="Width")],
        )
        assert await session.advance()
        assert [(row.name, row.action) for row in session.review_rows] == [("Sample A", "Create")]

        assert await session.advance()

    assert host.events == ["close", "reload"]
    assert session.notifications.history == []
    entity = db_session.query(Entity).filter(Entity.name == "Sample A").one()
    assert entity.owner == IDENTITY
    assert entity.projects == ["p1"]
    (attribute,) = entity.attributes
    assert attribute["name"] == "Size"
    assert attribute["owner"] == IDENTITY
    assert attribute["values"] == [{"id": "v1", "name": "Width", "type": "number", "data": "3"}]


@pytest.mark.asyncio
async def test_template_session_end_to_end(override_db, db_session):
    async with _app_client() as client:
        session = ImportSession(client, IDENTITY)
        session.select_subject(ImportSubject.TEMPLATE)
        session.select_file("templates.json", "application/json", b'[{"name": "Colour", "values": []}]')

        assert await session.advance()
        assert await session.advance()

    assert session.stage == "upload"
    assert db_session.query(Template).filter(Template.name == "Colour").one().owner == IDENTITY
