"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
from unittest.mock import Mock

from odata_provider.core.session import TransportResponse
from odata_provider.odata.metadata import SchemaCatalog
from odata_provider.provider import ODataDataProvider


SAMPLE_METADATA_XML = """<?xml version="1.0" encoding="utf-8"?>
<edmx:Edmx Version="4.0" xmlns:edmx="http://docs.oasis-open.org/odata/ns/edmx">
  <edmx:DataServices>
    <Schema Namespace="Sales" Alias="S" xmlns="http://docs.oasis-open.org/odata/ns/edm">
      <EntityType Name="Customer">
        <Key>
          <PropertyRef Name="CustomerID"/>
        </Key>
        <Property Name="CustomerID" Type="Edm.String" Nullable="false"/>
        <Property Name="CompanyName" Type="Edm.String"/>
        <Property Name="City" Type="Edm.String"/>
        <NavigationProperty Name="Orders" Type="Collection(Sales.Order)"/>
      </EntityType>
      <EntityType Name="Order">
        <Key>
          <PropertyRef Name="OrderID"/>
        </Key>
        <Property Name="OrderID" Type="Edm.Int32" Nullable="false"/>
        <Property Name="CustomerID" Type="Edm.String"/>
        <Property Name="ShipCity" Type="Edm.String"/>
        <NavigationProperty Name="Customer" Type="Sales.Customer"/>
      </EntityType>
      <EntityType Name="Category">
        <Key>
          <PropertyRef Name="id"/>
        </Key>
        <Property Name="id" Type="Edm.Int32" Nullable="false"/>
        <Property Name="name" Type="Edm.String"/>
      </EntityType>
      <EntityType Name="OrderDetail">
        <Key>
          <PropertyRef Name="OrderID"/>
          <PropertyRef Name="ProductID"/>
        </Key>
        <Property Name="OrderID" Type="Edm.Int32" Nullable="false"/>
        <Property Name="ProductID" Type="Edm.Int32" Nullable="false"/>
        <Property Name="Quantity" Type="Edm.Int16"/>
      </EntityType>
      <EntityType Name="AuditLog">
        <Property Name="Message" Type="Edm.String"/>
      </EntityType>
    </Schema>
    <Schema Namespace="Directory" xmlns="http://docs.oasis-open.org/odata/ns/edm">
      <EntityType Name="Group">
        <Key>
          <PropertyRef Name="GroupId"/>
        </Key>
        <Property Name="GroupId" Type="Edm.Guid" Nullable="false"/>
        <Property Name="DisplayName" Type="Edm.String"/>
      </EntityType>
      <EntityType Name="Member">
        <Key>
          <PropertyRef Name="MemberId"/>
        </Key>
        <Property Name="MemberId" Type="Edm.String" Nullable="false"/>
        <Property Name="GroupId" Type="Edm.Guid"/>
        <Property Name="Email" Type="Edm.String"/>
      </EntityType>
      <EntityContainer Name="Container">
        <EntitySet Name="Customers" EntityType="Sales.Customer"/>
        <EntitySet Name="Orders" EntityType="S.Order"/>
        <EntitySet Name="Categories" EntityType="Sales.Category"/>
        <EntitySet Name="Order_Details" EntityType="Sales.OrderDetail"/>
        <EntitySet Name="AuditLogs" EntityType="Sales.AuditLog"/>
        <EntitySet Name="Groups" EntityType="Directory.Group"/>
        <EntitySet Name="Members" EntityType="Directory.Member"/>
      </EntityContainer>
    </Schema>
  </edmx:DataServices>
</edmx:Edmx>"""

GROUP_ID = "0c1e6d2a-7b4f-4a8e-9c3d-2f5b6a7c8d9e"


def make_response(status=200, body=None, reason="OK", url="https://test.example.com/odata/"):
    """Build a TransportResponse; dict/list bodies are JSON-encoded."""
    if body is None:
        text = ""
    elif isinstance(body, str):
        text = body
    else:
        text = json.dumps(body)
    return TransportResponse(status_code=status, reason=reason, text=text, url=url)


@pytest.fixture
def sample_metadata_xml():
    """Sample OData v4 $metadata XML."""
    return SAMPLE_METADATA_XML


@pytest.fixture
def catalog():
    return SchemaCatalog.discover(SAMPLE_METADATA_XML)


@pytest.fixture
def mock_session():
    """Create a mock ODataSession serving the sample $metadata."""
    session = Mock()
    session.base = "https://test.example.com/odata/"
    session.timeout = 60.0
    session.verify = True
    session.get_text = Mock(return_value=SAMPLE_METADATA_XML)
    session.send = Mock(return_value=make_response(200, {}))
    return session


@pytest.fixture
def provider(mock_session):
    """Provider whose catalog was discovered through the mock session."""
    return ODataDataProvider(mock_session)


@pytest.fixture
def sample_customers():
    """Sample OData v4 collection response."""
    return {
        "@odata.context": "https://test.example.com/odata/$metadata#Customers",
        "@odata.count": 91,
        "value": [
            {"CustomerID": "ALFKI", "CompanyName": "Alfreds Futterkiste", "City": "Berlin"},
            {"CustomerID": "ANATR", "CompanyName": "Ana Trujillo", "City": "México D.F."},
        ],
    }
