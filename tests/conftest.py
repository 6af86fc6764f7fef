import pytest

from scoped_nl2sql.catalog.source import StaticTemplateSource
from scoped_nl2sql.config import Settings
from scoped_nl2sql.extract.base import ExtractionResult, IntentExtractor
from scoped_nl2sql.generator import SqlGenerator
from scoped_nl2sql.models.template import (
    ParameterConstraint,
    ParameterDefinition,
    ParameterType,
    Template,
    TenantContext,
)


def make_template(
    template_id="template-1",
    sql_pattern="SELECT * FROM Users WHERE Id = @testParam",
    parameters=None,
    **kwargs,
):
    """Build a template, inferring required string parameters from placeholders."""
    if parameters is None:
        parameters = [
            ParameterDefinition(name=token[1:], type=ParameterType.STRING)
            for token in sql_pattern.split()
            if token.startswith("@")
        ]
    return Template(
        id=template_id,
        name=kwargs.pop("name", f"Template {template_id}"),
        sql_pattern=sql_pattern,
        parameter_defs=tuple(parameters),
        **kwargs,
    )


class StubExtractor(IntentExtractor):
    """Returns a fixed extraction and counts calls."""

    def __init__(self, intent_tags=(), entities=()):
        self.result = ExtractionResult(intent_tags=intent_tags, entities=entities)
        self.calls = []

    def extract(self, text):
        self.calls.append(text)
        return self.result


@pytest.fixture
def tenant():
    return TenantContext(tenant_id="tenant-a", user_id="user-1")


@pytest.fixture
def admin_tenant():
    return TenantContext(tenant_id="tenant-a", user_id="admin", can_access_all_tenants=True)


@pytest.fixture
def users_by_email():
    return make_template(
        "users-by-email",
        "SELECT Id, Email FROM Users WHERE Email = @email",
        [ParameterDefinition(name="email", type=ParameterType.STRING)],
        tenant_scope_column="TenantId",
        intent_tags={"find", "users", "email"},
    )


@pytest.fixture
def orders_by_status():
    return make_template(
        "orders-by-status",
        "SELECT Id, Total FROM Orders WHERE Status = @status",
        [
            ParameterDefinition(
                name="status",
                type=ParameterType.ENUM,
                constraint=ParameterConstraint(allowed_values=("open", "shipped")),
            )
        ],
        tenant_scope_column="TenantId",
        intent_tags={"orders", "status"},
    )


@pytest.fixture
def products_by_category():
    return make_template(
        "products-by-category",
        "SELECT * FROM Products WHERE Category = @category AND Price > @minPrice",
        [
            ParameterDefinition(name="category", type=ParameterType.STRING),
            ParameterDefinition(name="minPrice", type=ParameterType.DECIMAL),
        ],
        intent_tags={"products", "category", "price"},
    )


@pytest.fixture
def generic_search():
    return make_template(
        "generic-search",
        "SELECT Id, Title FROM Documents",
        [],
        tenant_scope_column="TenantId",
        intent_tags={"search"},
    )


@pytest.fixture
def source(users_by_email, orders_by_status, products_by_category, generic_search):
    return StaticTemplateSource(
        [users_by_email, orders_by_status, products_by_category, generic_search]
    )


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def generator(settings):
    return SqlGenerator(settings=settings)
