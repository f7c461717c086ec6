"""Tests for the product-os command line."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from cli import __version__
from cli.main import app
from product_os.models import EntityType, ExportOptions

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, db_path: Path, workspace: Path) -> Path:
    """Config pointing the CLI at the test database and workspace."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "database": {"path": str(db_path)},
                "workspace": {"path": str(workspace)},
            }
        )
    )
    return path


@pytest.fixture
def invoke(config_file: Path, monkeypatch):
    """Run the CLI against the test config."""
    for key in ("PRODUCT_OS_CONFIG_PATH", "PRODUCT_OS_WORKSPACE", "PRODUCT_OS_DB_PATH"):
        monkeypatch.delenv(key, raising=False)
    # Wide enough that rich never wraps table cells
    monkeypatch.setenv("COLUMNS", "200")

    def _invoke(*args: str, input: str | None = None):
        return runner.invoke(app, ["--config", str(config_file), *args], input=input)

    return _invoke


class TestRoot:
    """Tests for root options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"product-os version {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "exports" in result.output

    def test_invalid_config_exits_1(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("export: [unclosed")

        result = runner.invoke(app, ["--config", str(bad), "products", "list"])
        assert result.exit_code == 1


class TestProductCommands:
    """Tests for products create/list."""

    def test_create_and_list(self, invoke, store):
        result = invoke("products", "create", "Checkout", "--description", "Payments")
        assert result.exit_code == 0
        assert "Created product Checkout" in result.output
        assert [p.name for p in store.list_products()] == ["Checkout"]

        listed = invoke("products", "list")
        assert listed.exit_code == 0
        assert "Checkout" in listed.output

    def test_list_empty(self, invoke):
        result = invoke("products", "list")
        assert result.exit_code == 0
        assert "No products yet" in result.output


class TestEntityCommands:
    """Tests for entity commands."""

    def test_add_and_list(self, invoke, store, product):
        result = invoke("entities", "add", product.id, "problem", "Slow", "--status", "active")
        assert result.exit_code == 0

        entities = store.list_entities(product.id)
        assert [(e.type, e.title, e.status) for e in entities] == [
            (EntityType.PROBLEM, "Slow", "active")
        ]

        listed = invoke("entities", "list", product.id, "--type", "problem")
        assert listed.exit_code == 0
        assert "Slow" in listed.output

    def test_add_accepts_hyphenated_type(self, invoke, store, product):
        result = invoke("entities", "add", product.id, "feature-request", "Dark mode")
        assert result.exit_code == 0
        assert store.list_entities(product.id)[0].type == EntityType.FEATURE_REQUEST

    def test_add_unknown_type(self, invoke, product):
        result = invoke("entities", "add", product.id, "epic", "Nope")
        assert result.exit_code == 1
        assert "Unknown entity type" in result.output

    def test_add_unknown_product(self, invoke):
        result = invoke("entities", "add", "prod_nope", "problem", "Orphan")
        assert result.exit_code == 1
        assert "Product not found" in result.output

    def test_link(self, invoke, store, make_entity):
        a = make_entity(EntityType.HYPOTHESIS, "A")
        b = make_entity(EntityType.PROBLEM, "B")

        result = invoke("entities", "link", a.id, b.id, "--type", "addresses")
        assert result.exit_code == 0
        assert store.get_relationships(a.id)[0].relationship_type == "addresses"

    def test_link_self_rejected(self, invoke, make_entity):
        a = make_entity(EntityType.HYPOTHESIS, "A")
        assert invoke("entities", "link", a.id, a.id).exit_code == 1

    def test_archive(self, invoke, store, make_entity):
        entity = make_entity(EntityType.PROBLEM, "Done")

        assert invoke("entities", "archive", entity.id).exit_code == 0
        assert store.get_entity(entity.id).status == "archived"

    def test_archive_missing(self, invoke):
        result = invoke("entities", "archive", "nope")
        assert result.exit_code == 1
        assert "Entity not found" in result.output

    def test_promote(self, invoke, store, make_entity):
        capture = make_entity(EntityType.CAPTURE, "Idea")

        result = invoke("entities", "promote", capture.id, "hypothesis")
        assert result.exit_code == 0
        assert store.get_entity(capture.id).promoted_to_id is not None


class TestTaxonomyCommands:
    """Tests for taxonomy commands."""

    def test_add_and_list(self, invoke, store, product):
        assert invoke("taxonomy", "add", product.id, "persona", "Admin").exit_code == 0
        assert invoke("taxonomy", "add", product.id, "dimension", "Size").exit_code == 0
        size = store.get_taxonomy(product.id).dimensions[0]
        assert invoke("taxonomy", "add", size.id, "dimension_value", "Large").exit_code == 0

        result = invoke("taxonomy", "list", product.id)
        assert result.exit_code == 0
        for name in ("Admin", "Size", "Large"):
            assert name in result.output

    def test_unknown_kind(self, invoke, product):
        assert invoke("taxonomy", "add", product.id, "segment", "X").exit_code == 1


class TestExportCommands:
    """Tests for export commands."""

    def test_preview(self, invoke, make_entity, product):
        make_entity(EntityType.PROBLEM, "Slow checkout")

        result = invoke("exports", "preview", "--product", product.id, "--mode", "full")
        assert result.exit_code == 0
        assert "Slow checkout" in result.output
        assert "Total: 1" in result.output

    def test_preview_incremental_with_linked(self, invoke, store, make_entity, product):
        seed = make_entity(EntityType.HYPOTHESIS, "Seed", updated_at="2024-06-02T00:00:00.000Z")
        linked = make_entity(EntityType.PROBLEM, "Linked", updated_at="2024-01-01T00:00:00.000Z")
        store.create_relationship(seed.id, linked.id)

        result = invoke(
            "exports", "preview", "--product", product.id,
            "--mode", "incremental", "--since", "2024-06-01", "--linked",
        )
        assert result.exit_code == 0
        assert "Linked" in result.output

        no_linked = invoke(
            "exports", "preview", "--product", product.id,
            "--mode", "incremental", "--since", "2024-06-01", "--no-linked",
        )
        assert "Total: 1" in no_linked.output

    def test_preview_bad_mode(self, invoke, product):
        result = invoke("exports", "preview", "--product", product.id, "--mode", "partial")
        assert result.exit_code == 1

    def test_preview_bad_since(self, invoke, product):
        result = invoke(
            "exports", "preview", "--product", product.id,
            "--mode", "incremental", "--since", "last week",
        )
        assert result.exit_code == 1
        assert "Invalid timestamp: last week" in result.output

    def test_preview_since_with_offset(self, invoke, make_entity, product):
        make_entity(EntityType.CAPTURE, "After cutoff", updated_at="2024-06-01T05:00:00.000Z")
        make_entity(EntityType.CAPTURE, "Before cutoff", updated_at="2024-06-01T03:00:00.000Z")

        result = invoke(
            "exports", "preview", "--product", product.id, "--mode", "incremental",
            "--since", "2024-06-01T06:00:00+02:00", "--no-linked",
        )
        assert result.exit_code == 0
        assert "Total: 1" in result.output
        assert "After cutoff" in result.output
        assert "Before cutoff" not in result.output

    def test_run_and_history(self, invoke, store, make_entity, product):
        make_entity(EntityType.PROBLEM, "Slow checkout")

        result = invoke("exports", "run", "--product", product.id, "--mode", "full")
        assert result.exit_code == 0
        assert "Exported 1 entities" in result.output

        records = store.get_export_history()
        assert len(records) == 1
        assert Path(records[0].output_path).is_dir()

        history = invoke("exports", "history")
        assert history.exit_code == 0
        assert "full" in history.output

    def test_run_without_workspace(self, tmp_path, db_path, product, monkeypatch):
        for key in ("PRODUCT_OS_CONFIG_PATH", "PRODUCT_OS_WORKSPACE", "PRODUCT_OS_DB_PATH"):
            monkeypatch.delenv(key, raising=False)
        config = tmp_path / "no-workspace.yaml"
        config.write_text(yaml.dump({"database": {"path": str(db_path)}}))

        result = runner.invoke(
            app, ["--config", str(config), "exports", "run", "--product", product.id]
        )
        assert result.exit_code == 1
        assert "Workspace not configured" in result.output

    def test_run_unknown_product(self, invoke):
        result = invoke("exports", "run", "--product", "prod_nope")
        assert result.exit_code == 1
        assert "Product not found" in result.output

    def test_clear_requires_confirmation(self, invoke, export_system, store, product):
        export_system.execute_export(ExportOptions(product.id))

        aborted = invoke("exports", "clear", input="n\n")
        assert aborted.exit_code == 1
        assert len(store.get_export_history()) == 1

        confirmed = invoke("exports", "clear", input="y\n")
        assert confirmed.exit_code == 0
        assert store.get_export_history() == []

    def test_delete(self, invoke, export_system, store, product):
        run = export_system.execute_export(ExportOptions(product.id))

        assert invoke("exports", "delete", run.id).exit_code == 0
        assert store.get_export_history() == []
        assert invoke("exports", "delete", run.id).exit_code == 1

    def test_snapshot_to_stdout(self, invoke, make_entity, product):
        make_entity(EntityType.PROBLEM, "Slow checkout", status="active")

        result = invoke("exports", "snapshot", product.id)
        assert result.exit_code == 0
        assert "# P1 - Current State" in result.output
        assert "## Active Problems" in result.output

    def test_snapshot_to_file(self, invoke, tmp_path, product):
        target = tmp_path / "snapshot.md"

        result = invoke("exports", "snapshot", product.id, "--output", str(target))
        assert result.exit_code == 0
        assert target.read_text(encoding="utf-8").startswith("# P1 - Current State")

    def test_snapshot_unknown_product(self, invoke):
        assert invoke("exports", "snapshot", "prod_nope").exit_code == 1

    def test_open(self, invoke, export_system, product):
        run = export_system.execute_export(ExportOptions(product.id))

        with patch("product_os.export_system.operations.sys.platform", "linux"), patch(
            "product_os.export_system.operations.subprocess.Popen"
        ) as popen:
            result = invoke("exports", "open", run.id)

        assert result.exit_code == 0
        assert popen.call_args[0][0] == ["xdg-open", run.output_path]

    def test_open_unknown_export(self, invoke):
        result = invoke("exports", "open", "exp_nope")
        assert result.exit_code == 1
        assert "Export not found" in result.output
