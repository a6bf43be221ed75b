"""
Example: Basic usage of odata_provider
======================================

Lists, fetches and references records of the public Northwind v4 service.
"""

import asyncio

from odata_provider import (
    ConnectionContext,
    ListParams,
    ODataAuth,
    ODataConfig,
    ODataDataProvider,
    ODataSession,
    Pagination,
    ReferenceParams,
    Sort,
)

NORTHWIND = "https://services.odata.org/V4/Northwind/Northwind.svc/"


async def example_basic_list():
    """One page of customers, filtered and sorted."""
    cfg = ODataConfig(service_url=NORTHWIND, auth=ODataAuth("none"))

    with ODataSession(cfg) as sess:
        provider = ODataDataProvider(sess)
        print("Resources:", provider.get_resources()[:5])

        page = await provider.get_list(
            "customers",
            ListParams(Pagination(1, 5), Sort("CompanyName", "desc"), {"City": "London"}),
        )
        print(f"{page.total} customers in London, first page:")
        for record in page.records:
            print(" ", record["id"], record["CompanyName"])


async def example_connection_context():
    """Settings from ODATA_* environment variables."""
    with ConnectionContext() as conn:
        provider = conn.get_provider()

        one = await provider.get_one("Customers", "ALFKI")
        print("ALFKI:", one.record["CompanyName"])

        many = await provider.get_many("Customers", ["ALFKI", "NOPE"])
        for err in many.errors:
            print("failed:", err.id, err.error)

        # orders of ALFKI through the parent's navigation property
        orders = await provider.get_many_reference("orders", ReferenceParams(
            target="Orders",
            id="ALFKI",
            pagination=Pagination(),
            sort=Sort("OrderID"),
            parent="customers",
        ))
        print(f"ALFKI has {orders.total} orders")


if __name__ == "__main__":
    asyncio.run(example_basic_list())
    # asyncio.run(example_connection_context())
