"""Tests for export selection and previews."""

from product_os.export_system import expand_linked_context, get_preview
from product_os.models import ALL_PRODUCTS, EntityType, ExportMode, ExportOptions

JAN = "2024-01-01T00:00:00.000Z"
MAY = "2024-05-01T00:00:00.000Z"
JUN_2 = "2024-06-02T00:00:00.000Z"
JUL = "2024-07-01T00:00:00.000Z"


def _ids(preview):
    return [summary.id for summary in preview.entities]


class TestFullMode:
    """Tests for full exports."""

    def test_every_entity_in_product(self, make_entity, store, product):
        old = make_entity(EntityType.PROBLEM, "old", updated_at=JAN)
        new = make_entity(EntityType.DECISION, "new", updated_at=JUL)

        preview = get_preview(store, ExportOptions(product.id, ExportMode.FULL))

        assert _ids(preview) == [new.id, old.id]
        assert preview.counts.total == 2
        assert preview.counts.by_type[EntityType.PROBLEM] == 1
        assert preview.counts.by_type[EntityType.DECISION] == 1

    def test_start_date_ignored(self, make_entity, store, product):
        make_entity(EntityType.PROBLEM, "old", updated_at=JAN)

        options = ExportOptions(product.id, ExportMode.FULL, start_date="2024-06-01")
        assert get_preview(store, options).counts.total == 1

    def test_scoped_to_product(self, make_entity, store, product):
        other = store.create_product("Other")
        make_entity(EntityType.PROBLEM, "mine")
        make_entity(EntityType.PROBLEM, "theirs", product_id=other.id)

        assert get_preview(store, ExportOptions(product.id)).counts.total == 1

    def test_all_products(self, make_entity, store, product):
        other = store.create_product("Other")
        make_entity(EntityType.PROBLEM, "mine")
        make_entity(EntityType.PROBLEM, "theirs", product_id=other.id)

        assert get_preview(store, ExportOptions(ALL_PRODUCTS)).counts.total == 2

    def test_empty_product(self, store, product):
        preview = get_preview(store, ExportOptions(product.id))
        assert preview.entities == []
        assert preview.counts.total == 0
        assert all(count == 0 for count in preview.counts.by_type.values())


class TestIncrementalMode:
    """Tests for incremental exports."""

    def test_created_or_updated_since(self, make_entity, store, product):
        updated = make_entity(EntityType.PROBLEM, "updated", created_at=JAN, updated_at=JUL)
        created = make_entity(EntityType.CAPTURE, "created", updated_at=JUN_2)
        make_entity(EntityType.CAPTURE, "stale", updated_at=MAY)

        options = ExportOptions(product.id, ExportMode.INCREMENTAL, start_date="2024-06-01")
        assert _ids(get_preview(store, options)) == [updated.id, created.id]

    def test_cutoff_at_exact_instant_is_inclusive(self, make_entity, store, product):
        boundary = make_entity(EntityType.CAPTURE, "boundary", updated_at="2024-06-01T00:00:00.000Z")

        options = ExportOptions(
            product.id, ExportMode.INCREMENTAL, start_date="2024-06-01T00:00:00Z"
        )
        assert _ids(get_preview(store, options)) == [boundary.id]

    def test_cutoff_with_offset_compared_in_utc(self, make_entity, store, product):
        after = make_entity(EntityType.CAPTURE, "after", updated_at="2024-06-01T05:00:00.000Z")
        make_entity(EntityType.CAPTURE, "before", updated_at="2024-06-01T03:00:00.000Z")

        # 06:00+02:00 is 04:00Z
        options = ExportOptions(
            product.id, ExportMode.INCREMENTAL, start_date="2024-06-01T06:00:00+02:00"
        )
        assert _ids(get_preview(store, options)) == [after.id]

    def test_date_cutoff_means_midnight_utc(self, make_entity, store, product):
        midnight = make_entity(EntityType.CAPTURE, "midnight", updated_at="2024-06-01T00:00:00.000Z")
        make_entity(EntityType.CAPTURE, "late", updated_at="2024-05-31T23:59:59.999Z")

        options = ExportOptions(product.id, ExportMode.INCREMENTAL, start_date="2024-06-01")
        assert _ids(get_preview(store, options)) == [midnight.id]

    def test_without_start_date_behaves_like_full(self, make_entity, store, product):
        make_entity(EntityType.CAPTURE, "stale", updated_at=JAN)

        options = ExportOptions(product.id, ExportMode.INCREMENTAL)
        assert get_preview(store, options).counts.total == 1

    def test_linked_context_off_by_flag(self, make_entity, store, product):
        seed = make_entity(EntityType.HYPOTHESIS, "seed", updated_at=JUN_2)
        linked = make_entity(EntityType.PROBLEM, "linked", updated_at=JAN)
        store.create_relationship(seed.id, linked.id)

        options = ExportOptions(
            product.id, ExportMode.INCREMENTAL, start_date="2024-06-01",
            include_linked_context=False,
        )
        assert _ids(get_preview(store, options)) == [seed.id]

    def test_linked_context_expansion(self, make_entity, store, product):
        """A links to B (otherwise excluded); unrelated stale C stays out."""
        a = make_entity(EntityType.HYPOTHESIS, "A", updated_at=JUN_2)
        b = make_entity(EntityType.PROBLEM, "B", updated_at=JAN)
        c = make_entity(EntityType.DECISION, "C", updated_at=JAN)
        store.create_relationship(a.id, b.id)

        options = ExportOptions(
            product_id=product.id,
            mode=ExportMode.INCREMENTAL,
            start_date="2024-06-01",
            include_linked_context=True,
        )
        preview = get_preview(store, options)

        assert _ids(preview) == [a.id, b.id]
        assert c.id not in _ids(preview)
        assert preview.counts.by_type[EntityType.PROBLEM] == 1
        assert preview.counts.total == 2

    def test_expansion_is_one_hop(self, make_entity, store, product):
        a = make_entity(EntityType.HYPOTHESIS, "A", updated_at=JUN_2)
        b = make_entity(EntityType.PROBLEM, "B", updated_at=JAN)
        c = make_entity(EntityType.DECISION, "C", updated_at=JAN)
        store.create_relationship(a.id, b.id)
        store.create_relationship(b.id, c.id)

        options = ExportOptions(
            product.id, ExportMode.INCREMENTAL, start_date="2024-06-01",
            include_linked_context=True,
        )
        assert _ids(get_preview(store, options)) == [a.id, b.id]

    def test_no_duplicates_when_target_is_also_seed(self, make_entity, store, product):
        a = make_entity(EntityType.HYPOTHESIS, "A", updated_at=JUN_2)
        b = make_entity(EntityType.PROBLEM, "B", updated_at=JUL)
        store.create_relationship(a.id, b.id)
        store.create_relationship(b.id, a.id)

        options = ExportOptions(
            product.id, ExportMode.INCREMENTAL, start_date="2024-06-01",
            include_linked_context=True,
        )
        preview = get_preview(store, options)

        assert sorted(_ids(preview)) == sorted([a.id, b.id])
        assert preview.counts.total == 2

    def test_full_mode_never_expands(self, make_entity, store, product):
        """Full mode already includes every linked entity exactly once."""
        a = make_entity(EntityType.HYPOTHESIS, "A")
        b = make_entity(EntityType.PROBLEM, "B")
        store.create_relationship(a.id, b.id)

        options = ExportOptions(product.id, ExportMode.FULL, include_linked_context=True)
        assert get_preview(store, options).counts.total == 2


class TestExpandLinkedContext:
    """Tests for expand_linked_context directly."""

    def test_empty_seeds(self, store):
        assert expand_linked_context(store, []) == []

    def test_excludes_seeds(self, make_entity, store):
        a = make_entity(EntityType.HYPOTHESIS, "A")
        b = make_entity(EntityType.PROBLEM, "B")
        store.create_relationship(a.id, b.id)

        assert expand_linked_context(store, [a, b]) == []
        assert [e.id for e in expand_linked_context(store, [a])] == [b.id]
