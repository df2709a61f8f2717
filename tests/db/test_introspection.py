"""
Tests for live schema introspection.

Runs the SQLAlchemy schema provider against an in-memory SQLite database.
"""

import pytest
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
)
from sqlalchemy.engine import Engine

from packages.core.builder.session import QueryBuilderSession
from packages.core.query_model.ids import SequentialIdGenerator
from packages.core.query_model.models import ComparisonOperator
from packages.core.schema_registry.registry import FieldType, SchemaIntrospectionError
from packages.core.settings import BuilderSettings, get_settings
from packages.db.base import get_database_url, get_engine
from packages.db.introspection import SQLAlchemySchemaProvider


# -----------------------------
# Fixtures
# -----------------------------


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite database with customers and invoices tables."""
    engine = create_engine("sqlite://")
    metadata = MetaData()
    customers = Table(
        "customers",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("email", String(255), nullable=False),
        Column("is_active", Boolean),
        Column("signup_date", Date),
    )
    Index("ix_customers_email", customers.c.email, unique=True)
    Table(
        "invoices",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("customer_id", Integer),
        Column("amount", Numeric(10, 2)),
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def provider(engine: Engine) -> SQLAlchemySchemaProvider:
    return SQLAlchemySchemaProvider(engine)


# -----------------------------
# Provider Tests
# -----------------------------


class TestSQLAlchemySchemaProvider:
    """Tests for describing tables through sqlalchemy.inspect."""

    def test_columns(self, provider: SQLAlchemySchemaProvider) -> None:
        schema = provider.get_table_schema("", "customers")

        assert schema.table_name == "customers"
        assert [c.name for c in schema.columns] == [
            "id",
            "email",
            "is_active",
            "signup_date",
        ]
        assert schema.get_column("id").field_type == FieldType.NUMERIC
        assert schema.get_column("email").data_type == "VARCHAR(255)"
        assert schema.get_column("email").nullable is False
        assert schema.get_column("is_active").field_type == FieldType.BOOLEAN
        assert schema.get_column("signup_date").field_type == FieldType.DATE

    def test_indexes(self, provider: SQLAlchemySchemaProvider) -> None:
        schema = provider.get_table_schema("", "customers")
        index = next(i for i in schema.indexes if i.name == "ix_customers_email")
        assert index.columns == ("email",)
        assert index.unique is True

    def test_missing_table(self, provider: SQLAlchemySchemaProvider) -> None:
        with pytest.raises(SchemaIntrospectionError, match="'nope' not found"):
            provider.get_table_schema("", "nope")

    def test_list_tables(self, provider: SQLAlchemySchemaProvider) -> None:
        assert sorted(provider.list_tables("")) == ["customers", "invoices"]
        assert "main" in provider.list_schemas()


# -----------------------------
# Session Integration Tests
# -----------------------------


class TestSessionWithDatabase:
    """Introspected column types drive literal formatting."""

    def test_typed_literals(self, provider: SQLAlchemySchemaProvider) -> None:
        session = QueryBuilderSession(
            "sqlite",
            id_generator=SequentialIdGenerator(),
            schema_provider=provider,
            settings=BuilderSettings(),
        )
        customers = session.add_table("", "customers").alias
        invoices = session.add_table("", "invoices").alias
        session.add_join(customers, "id", invoices, "customer_id")
        session.add_condition(invoices, "amount", ComparisonOperator.GT, "99.50")
        session.add_condition(customers, "is_active", value="yes")

        assert session.validation.valid is True
        assert session.sql == (
            "SELECT * FROM customers AS customers "
            "INNER JOIN invoices AS invoices ON customers.id = invoices.customer_id "
            "WHERE invoices.amount > 99.50 AND customers.is_active = true"
        )


# -----------------------------
# Engine Tests
# -----------------------------


class TestEngine:
    """Tests for engine configuration."""

    def test_explicit_url(self) -> None:
        engine = get_engine("sqlite://")
        provider = SQLAlchemySchemaProvider(engine)
        assert provider.list_tables("") == []
        engine.dispose()

    def test_configured_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUERY_BUILDER_DATABASE_URL", "sqlite://")
        get_settings.cache_clear()
        try:
            assert get_database_url() == "sqlite://"
            assert get_engine().dialect.name == "sqlite"
        finally:
            get_settings.cache_clear()
