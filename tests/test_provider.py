"""
Tests for ODataDataProvider: the asynchronous generic operations.
"""

import pytest
import requests
from unittest.mock import AsyncMock, Mock

from odata_provider.core.errors import (
    InvalidKeyError,
    ODataServerError,
    ODataTransportError,
    SchemaError,
    UnsupportedOperationError,
)
from odata_provider.odata.metadata import SchemaCatalog
from odata_provider.odata.params import (
    CreateParams,
    ListParams,
    Pagination,
    ReferenceParams,
    Sort,
)
from odata_provider.odata.responses import RecordError
from odata_provider.provider import ODataDataProvider

from conftest import make_response


def responses_by_path(mapping):
    """send() side effect answering per request path."""
    def send(request, extra_headers=None):
        answer = mapping[request.path]
        if isinstance(answer, Exception):
            raise answer
        return answer
    return send


def sent_requests(mock_session):
    return [c.args[0] for c in mock_session.send.call_args_list]


class TestConstruction:
    """Tests for provider construction and discovery."""

    def test_discovers_metadata_once(self, mock_session):
        provider = ODataDataProvider(mock_session)
        mock_session.get_text.assert_called_once_with("$metadata")
        assert "customers" in provider.catalog

    def test_prebuilt_catalog_skips_discovery(self, mock_session, sample_metadata_xml):
        catalog = SchemaCatalog.discover(sample_metadata_xml)
        provider = ODataDataProvider(mock_session, catalog=catalog)
        mock_session.get_text.assert_not_called()
        assert provider.catalog is catalog

    def test_get_resources(self, provider):
        assert provider.get_resources() == ["Customers", "Orders", "Categories", "Groups", "Members"]


class TestGetList:
    """Tests for get_list."""

    @pytest.mark.asyncio
    async def test_returns_records_and_total(self, provider, mock_session, sample_customers):
        mock_session.send.return_value = make_response(200, sample_customers)

        result = await provider.get_list(
            "Customers", ListParams(Pagination(3, 10), Sort("CompanyName"), {"City": "Berlin"})
        )

        assert result.total == 91
        assert [r["id"] for r in result.records] == ["ALFKI", "ANATR"]
        assert result.records[0]["CustomerID"] == "ALFKI"
        (request,) = sent_requests(mock_session)
        assert request.params["$skip"] == "20"
        assert request.params["$filter"] == "Contains(City,'Berlin')"

    @pytest.mark.asyncio
    async def test_related_collection_uses_related_key(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"@odata.count": 1, "value": [{"OrderID": 5}]})

        result = await provider.get_list(
            "Customers", ListParams(Pagination(), Sort("OrderID"), id="ALFKI", related="Orders")
        )

        assert result.records == [{"OrderID": 5, "id": 5}]
        assert sent_requests(mock_session)[0].path == "Customers('ALFKI')/Orders"

    @pytest.mark.asyncio
    async def test_transport_error(self, provider, mock_session):
        mock_session.send.return_value = make_response(500, "boom", reason=None)

        with pytest.raises(ODataTransportError) as exc_info:
            await provider.get_list("Customers", ListParams(Pagination(), Sort("CompanyName")))

        assert exc_info.value.status == 500
        assert exc_info.value.message == "getList error"
        assert exc_info.value.body == "boom"

    @pytest.mark.asyncio
    async def test_server_error_envelope(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"error": {"message": "Bad filter"}})

        with pytest.raises(ODataServerError, match="Bad filter"):
            await provider.get_list("Customers", ListParams(Pagination(), Sort("CompanyName")))

    @pytest.mark.asyncio
    async def test_unknown_resource(self, provider, mock_session):
        with pytest.raises(SchemaError):
            await provider.get_list("Order_Details", ListParams(Pagination(), Sort("OrderID")))
        mock_session.send.assert_not_called()


class TestGetOne:
    """Tests for get_one."""

    @pytest.mark.asyncio
    async def test_integer_key(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"OrderID": 1, "ShipCity": "Reims"})

        result = await provider.get_one("orders", 1)

        assert result.record == {"OrderID": 1, "ShipCity": "Reims", "id": 1}
        assert sent_requests(mock_session)[0].path == "Orders(1)"

    @pytest.mark.asyncio
    async def test_string_key(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"CustomerID": "ALFKI"})

        await provider.get_one("Customers", "ALFKI")

        assert sent_requests(mock_session)[0].path == "Customers('ALFKI')"

    @pytest.mark.asyncio
    async def test_not_found(self, provider, mock_session):
        mock_session.send.return_value = make_response(404, "", reason="Not Found")

        with pytest.raises(ODataTransportError) as exc_info:
            await provider.get_one("orders", 99)

        assert exc_info.value.status == 404
        assert exc_info.value.message == "Not Found"

    @pytest.mark.asyncio
    async def test_options_headers(self, mock_session, sample_metadata_xml):
        options = AsyncMock(return_value={"Authorization": "Bearer fresh"})
        provider = ODataDataProvider(mock_session, options=options)
        mock_session.send.return_value = make_response(200, {"OrderID": 1})

        await provider.get_one("orders", 1)

        options.assert_awaited_once()
        assert mock_session.send.call_args.kwargs["extra_headers"] == {"Authorization": "Bearer fresh"}


class TestGetMany:
    """Tests for get_many."""

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_alignment(self, provider, mock_session):
        mock_session.send.side_effect = responses_by_path({
            "Orders(1)": make_response(200, {"OrderID": 1}),
            "Orders(2)": make_response(500, "down", reason="Internal Server Error"),
            "Orders(3)": make_response(200, {"OrderID": 3}),
        })

        result = await provider.get_many("orders", [1, 2, 3])

        assert len(result.records) == 3
        assert result.records[0] == {"OrderID": 1, "id": 1}
        assert result.records[2] == {"OrderID": 3, "id": 3}
        failed = result.records[1]
        assert isinstance(failed, RecordError)
        assert failed.id == 2
        assert isinstance(failed.error, ODataTransportError)
        assert failed.error.status == 500
        assert result.errors == [failed]

    @pytest.mark.asyncio
    async def test_error_envelope_slot(self, provider, mock_session):
        mock_session.send.side_effect = responses_by_path({
            "Customers('A')": make_response(200, {"error": {"message": "nope"}}),
            "Customers('B')": make_response(200, {"CustomerID": "B"}),
        })

        result = await provider.get_many("customers", ["A", "B"])

        assert isinstance(result.records[0].error, ODataServerError)
        assert result.records[1]["id"] == "B"

    @pytest.mark.asyncio
    async def test_empty_ids(self, provider, mock_session):
        result = await provider.get_many("orders", [])
        assert result.records == []
        mock_session.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_network_error_fills_slot(self, provider, mock_session):
        reset = requests.ConnectionError("reset")
        mock_session.send.side_effect = responses_by_path({
            "Orders(1)": make_response(200, {"OrderID": 1}),
            "Orders(2)": reset,
        })

        result = await provider.get_many("orders", [1, 2])

        assert result.records[0]["id"] == 1
        assert result.records[1] == RecordError(2, reset)

    @pytest.mark.asyncio
    async def test_invalid_key_fills_slot(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"OrderID": 1})

        result = await provider.get_many("orders", [1, "1)/Customer("])

        assert result.records[0]["id"] == 1
        assert isinstance(result.records[1].error, InvalidKeyError)
        assert mock_session.send.call_count == 1

    @pytest.mark.asyncio
    async def test_unknown_resource_raises(self, provider, mock_session):
        with pytest.raises(SchemaError):
            await provider.get_many("nothing", [1])
        mock_session.send.assert_not_called()


class TestGetManyReference:
    """Tests for get_many_reference."""

    @pytest.mark.asyncio
    async def test_expand_strategy(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {
            "CustomerID": "ALFKI",
            "Orders": [{"OrderID": 1}, {"OrderID": 2}],
        })

        result = await provider.get_many_reference("orders", ReferenceParams(
            target="Orders",
            id="ALFKI",
            pagination=Pagination(),
            sort=Sort("OrderID"),
            filter={"parent": "customers"},
        ))

        assert result.total == 2
        assert [r["id"] for r in result.records] == [1, 2]
        request = sent_requests(mock_session)[0]
        assert request.path == "Customers('ALFKI')"
        assert request.params == {"$expand": "Orders"}

    @pytest.mark.asyncio
    async def test_filter_strategy(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {
            "@odata.count": 12,
            "value": [{"OrderID": 10}],
        })

        result = await provider.get_many_reference("orders", ReferenceParams(
            target="CustomerID",
            id="ALFKI",
            pagination=Pagination(1, 1),
            sort=Sort("OrderID"),
        ))

        assert result.total == 12
        assert result.records == [{"OrderID": 10, "id": 10}]
        assert sent_requests(mock_session)[0].params["$filter"] == "CustomerID eq 'ALFKI'"

    @pytest.mark.asyncio
    async def test_without_id_issues_no_request(self, provider, mock_session):
        result = await provider.get_many_reference("orders", ReferenceParams(
            target="CustomerID",
            id=None,
            pagination=Pagination(),
            sort=Sort("OrderID"),
        ))

        assert result.records == []
        assert result.total == 0
        mock_session.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_rejects(self, provider, mock_session):
        mock_session.send.return_value = make_response(403, "denied", reason="Forbidden")

        with pytest.raises(ODataTransportError):
            await provider.get_many_reference("orders", ReferenceParams(
                "CustomerID", "ALFKI", Pagination(), Sort("OrderID")
            ))


class TestWrites:
    """Tests for create, update and delete."""

    @pytest.mark.asyncio
    async def test_create(self, provider, mock_session):
        mock_session.send.return_value = make_response(201, {"CustomerID": "NEWCO"}, reason="Created")

        result = await provider.create("customers", CreateParams({"id": "NEWCO", "CustomerID": "NEWCO"}))

        assert result.record == {"CustomerID": "NEWCO", "id": "NEWCO"}
        request = sent_requests(mock_session)[0]
        assert request.method == "POST"
        assert request.path == "Customers"
        assert request.body == {"CustomerID": "NEWCO"}

    @pytest.mark.asyncio
    async def test_create_related(self, provider, mock_session):
        mock_session.send.return_value = make_response(201, {"OrderID": 11078, "CustomerID": "ALFKI"})

        result = await provider.create("customers", CreateParams({"ShipCity": "Bern"}, "ALFKI", "Orders"))

        assert result.record["id"] == 11078
        assert sent_requests(mock_session)[0].path == "Customers('ALFKI')/Orders"

    @pytest.mark.asyncio
    async def test_create_error(self, provider, mock_session):
        mock_session.send.return_value = make_response(400, "bad", reason="Bad Request")

        with pytest.raises(ODataTransportError):
            await provider.create("customers", CreateParams({"CustomerID": "X"}))

    @pytest.mark.asyncio
    async def test_update_patches(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"OrderID": 7, "ShipCity": "Bern"})

        result = await provider.update("orders", 7, {"ShipCity": "Bern"})

        assert result.record == {"OrderID": 7, "ShipCity": "Bern", "id": 7}
        request = sent_requests(mock_session)[0]
        assert request.method == "PATCH"
        assert request.path == "Orders(7)"

    @pytest.mark.asyncio
    async def test_update_no_content(self, provider, mock_session):
        mock_session.send.return_value = make_response(204, None, reason="No Content")

        result = await provider.update("customers", "ALFKI", {"City": "Bern"})

        assert result.record == {"City": "Bern", "CustomerID": "ALFKI", "id": "ALFKI"}

    @pytest.mark.asyncio
    async def test_update_many_always_fails(self, provider, mock_session):
        with pytest.raises(UnsupportedOperationError):
            await provider.update_many("orders", [1, 2], {"ShipCity": "Bern"})
        with pytest.raises(UnsupportedOperationError):
            await provider.update_many("anything", [], {})
        mock_session.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self, provider, mock_session):
        mock_session.send.return_value = make_response(204, None, reason="No Content")

        result = await provider.delete("customers", "ALFKI")

        assert result.record == {"CustomerID": "ALFKI", "id": "ALFKI"}
        request = sent_requests(mock_session)[0]
        assert request.method == "DELETE"
        assert request.path == "Customers('ALFKI')"

    @pytest.mark.asyncio
    async def test_delete_error(self, provider, mock_session):
        mock_session.send.return_value = make_response(404, "", reason="Not Found")

        with pytest.raises(ODataTransportError):
            await provider.delete("orders", 1)


class TestDeleteMany:
    """Tests for delete_many."""

    @pytest.mark.asyncio
    async def test_partial_success(self, provider, mock_session):
        mock_session.send.side_effect = responses_by_path({
            "Orders(1)": make_response(204, None),
            "Orders(2)": make_response(404, "", reason="Not Found"),
            "Orders(3)": make_response(200, {}),
        })

        result = await provider.delete_many("orders", [1, 2, 3])

        assert result.ids == [1, 3]
        assert len(result.failures) == 1
        assert result.failures[0].id == 2
        assert result.failures[0].error.status == 404
        assert all(r.method == "DELETE" for r in sent_requests(mock_session))

    @pytest.mark.asyncio
    async def test_all_succeed(self, provider, mock_session):
        mock_session.send.return_value = make_response(204, None)

        result = await provider.delete_many("customers", ["A", "B"])

        assert result.ids == ["A", "B"]
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_network_error_does_not_abort_batch(self, provider, mock_session):
        reset = requests.ConnectionError("reset")
        mock_session.send.side_effect = responses_by_path({
            "Orders(1)": make_response(204, None),
            "Orders(2)": reset,
            "Orders(3)": make_response(204, None),
        })

        result = await provider.delete_many("orders", [1, 2, 3])

        assert result.ids == [1, 3]
        assert result.failures == [RecordError(2, reset)]
        assert mock_session.send.call_count == 3


class TestKeyValidation:
    """Tests for key checks before any request is sent."""

    @pytest.mark.asyncio
    async def test_get_one_rejects_invalid_integer_key(self, provider, mock_session):
        with pytest.raises(InvalidKeyError):
            await provider.get_one("orders", "1)/Customer(")
        mock_session.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_reserved_characters_in_string_key(self, provider, mock_session):
        mock_session.send.return_value = make_response(200, {"CustomerID": "A#B"})

        result = await provider.get_one("customers", "A#B")

        assert result.record["id"] == "A#B"
        assert sent_requests(mock_session)[0].path == "Customers('A%23B')"
