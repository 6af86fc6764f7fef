import json
from pathlib import Path

import pytest

from conftest import make_template
from scoped_nl2sql.catalog.source import CatalogError, StaticTemplateSource, load_template_catalog
from scoped_nl2sql.models.template import OperationType, ParameterType, StringFormat

SAMPLE_CATALOG = Path(__file__).resolve().parents[1] / "data" / "templates.json"


def _write(tmp_path, payload):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestStaticTemplateSource:
    def test_lists_shared_and_tenant_templates(self):
        shared = make_template("shared", "SELECT * FROM A", parameters=[])
        extra = make_template("extra", "SELECT * FROM B", parameters=[])
        source = StaticTemplateSource([shared], {"tenant-a": [extra]})
        assert [t.id for t in source.list_templates()] == ["shared"]
        assert [t.id for t in source.list_templates("tenant-a")] == ["shared", "extra"]
        assert [t.id for t in source.list_templates("tenant-b")] == ["shared"]

    def test_get_template(self):
        source = StaticTemplateSource([make_template("one", "SELECT 1", parameters=[])])
        assert source.get_template("one").id == "one"
        assert source.get_template("missing") is None

    def test_duplicate_ids_rejected(self):
        template = make_template("dup", "SELECT 1", parameters=[])
        with pytest.raises(CatalogError, match="Duplicate"):
            StaticTemplateSource([template, template])

    def test_snapshot_is_immutable(self):
        templates = [make_template("one", "SELECT 1", parameters=[])]
        source = StaticTemplateSource(templates)
        templates.append(make_template("two", "SELECT 2", parameters=[]))
        assert len(source.list_templates()) == 1


class TestCatalogLoading:
    def test_loads_sample_catalog(self):
        source = load_template_catalog(SAMPLE_CATALOG)
        users = source.get_template("users-by-email")
        assert users.tenant_scope_column == "TenantId"
        assert users.allowed_operation is OperationType.SELECT
        assert users.parameter_defs[0].constraint.format is StringFormat.EMAIL
        orders = source.get_template("orders-by-status")
        assert orders.parameter_defs[0].type is ParameterType.ENUM

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError, match="not found"):
            load_template_catalog(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogError, match="not valid JSON"):
            load_template_catalog(path)

    def test_version_mismatch(self, tmp_path):
        path = _write(tmp_path, {"catalog_format_version": "9.9", "templates": []})
        with pytest.raises(CatalogError, match="Unsupported catalog format version"):
            load_template_catalog(path)

    def test_invalid_template_reports_position(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "catalog_format_version": "1.0",
                "templates": [{"id": "x", "name": "X", "sql_pattern": "SELECT 1", "allowed_operation": "drop"}],
            },
        )
        with pytest.raises(CatalogError, match="Template #0"):
            load_template_catalog(path)

    def test_tenant_templates(self, tmp_path):
        path = _write(
            tmp_path,
            {
                "catalog_format_version": "1.0",
                "templates": [],
                "tenant_templates": {
                    "acme": [{"id": "acme-only", "name": "Acme", "sql_pattern": "SELECT 1"}]
                },
            },
        )
        source = load_template_catalog(path)
        assert source.list_templates() == ()
        assert [t.id for t in source.list_templates("acme")] == ["acme-only"]
