import logging

import pytest
from sqlalchemy import event, func, select

from app.core.db.schemas.cards import CardTag, Tag
from app.core.errors import ServerError
from app.modules.cards.models import CardCreate, CardUpdate, TagRef
from app.modules.cards.tags import TagSetReconciler


def new_card(front="Q", back="A", tags=(), hint=None):
    return CardCreate(
        front=front, back=back, hint=hint, tags=[TagRef(tag=t) for t in tags]
    )


async def associations(session, card_id):
    rows = await session.execute(
        select(Tag.tag)
        .join(CardTag, CardTag.tag_id == Tag.tag_id)
        .where(CardTag.card_id == card_id)
    )
    return sorted(rows.scalars().all())


async def tag_labels(session):
    rows = await session.execute(select(Tag.tag).order_by(Tag.tag))
    return list(rows.scalars().all())


def test_create_assigns_id_and_tags(run_service):
    async def scenario(service):
        card = await service.create(new_card(tags=["math", "algebra"]))
        return card, await associations(service.session, card.card_id)

    card, linked = run_service(scenario)
    assert card.card_id is not None
    assert [t.tag for t in card.tags] == ["algebra", "math"]
    assert linked == ["algebra", "math"]


def test_duplicate_labels_collapse(run_service):
    async def scenario(service):
        card = await service.create(new_card(tags=["x", "x", "y"]))
        count = await service.session.execute(
            select(func.count()).select_from(CardTag).where(CardTag.card_id == card.card_id)
        )
        return card, count.scalar_one()

    card, count = run_service(scenario)
    assert card.tag_labels() == ["x", "y"]
    assert count == 2


def test_reconcile_is_idempotent(run_service):
    async def scenario(service):
        card = await service.create(new_card(tags=["a", "b"]))
        reconciler = TagSetReconciler(service.session)
        first = await reconciler.reconcile(card.card_id, ["a", "b"])
        second = await reconciler.reconcile(card.card_id, ["a", "b"])
        await service.session.commit()
        return first, second, await associations(service.session, card.card_id)

    first, second, linked = run_service(scenario)
    assert not first.changed
    assert not second.changed
    assert linked == ["a", "b"]


def test_tag_rows_are_shared_between_cards(run_service):
    async def scenario(service):
        one = await service.create(new_card(front="one", tags=["x"]))
        two = await service.create(new_card(front="two", tags=["x"]))
        tag_rows = await service.session.execute(select(Tag).where(Tag.tag == "x"))
        links = await service.session.execute(
            select(CardTag.card_id, CardTag.tag_id).order_by(CardTag.card_id)
        )
        return one, two, tag_rows.scalars().all(), links.all()

    one, two, tag_rows, links = run_service(scenario)
    assert len(tag_rows) == 1
    tag_id = tag_rows[0].tag_id
    assert [tuple(link) for link in links] == [(one.card_id, tag_id), (two.card_id, tag_id)]


def test_set_difference_keeps_unused_tags(run_service):
    async def scenario(service):
        card = await service.create(new_card(tags=["a", "b", "c"]))
        diff = await TagSetReconciler(service.session).reconcile(card.card_id, ["b", "d"])
        await service.session.commit()
        return (
            diff,
            await associations(service.session, card.card_id),
            await tag_labels(service.session),
        )

    diff, linked, labels = run_service(scenario)
    assert linked == ["b", "d"]
    assert sorted(diff.removed) == ["a", "c"]
    assert diff.added == ["d"]
    assert diff.created == ["d"]
    assert labels == ["a", "b", "c", "d"]


def test_reconcile_to_empty_set_removes_all_links(run_service):
    async def scenario(service):
        card = await service.create(new_card(tags=["a", "b"]))
        updated = await service.update(card.card_id, CardUpdate(tags=[]))
        return updated, await associations(service.session, card.card_id)

    updated, linked = run_service(scenario)
    assert updated.tags == []
    assert linked == []


def test_failed_sync_rolls_back_field_update(run_service, monkeypatch):
    card = run_service(lambda service: service.create(new_card(front="before", tags=["a"])))

    async def broken_sync(self, card_id, tag_ids):
        raise RuntimeError("simulated storage fault")

    monkeypatch.setattr(TagSetReconciler, "sync_associations", broken_sync)

    async def scenario(service):
        with pytest.raises(RuntimeError):
            await service.update(
                card.card_id,
                CardUpdate(front="after", hint="h", tags=[TagRef(tag="b")]),
            )

    run_service(scenario)
    monkeypatch.undo()

    reloaded = run_service(lambda service: service.get(card.card_id))
    assert reloaded.front == "before"
    assert reloaded.hint is None
    assert reloaded.tag_labels() == ["a"]

    labels = run_service(lambda service: tag_labels(service.session))
    assert labels == ["a"]


def test_association_count_mismatch_is_server_error(run_service, monkeypatch):
    async def no_links(self, card_id, tag_ids):
        return 0

    monkeypatch.setattr(TagSetReconciler, "_count_associations", no_links)

    async def scenario(service):
        with pytest.raises(ServerError):
            await service.create(new_card(front="ghost", tags=["a"]))

    run_service(scenario)
    monkeypatch.undo()

    cards = run_service(lambda service: service.find({}, {}))
    assert cards == []


def test_upserts_write_rows_in_sorted_order(run_service):
    async def scenario(service):
        inserts = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith(("INSERT INTO tags", "INSERT INTO card_tags")):
                inserts.append((statement.split()[2], tuple(parameters)))

        await service.create(new_card(front="first", tags=["zeta"]))
        event.listen(service.session.bind.sync_engine, "before_cursor_execute", capture)
        card = await service.create(new_card(front="second", tags=["mid", "alpha", "zeta"]))
        ids = await service.session.execute(select(Tag.tag, Tag.tag_id))
        return card, dict(ids.all()), inserts

    card, ids, inserts = run_service(scenario)
    tag_insert = [params for table, params in inserts if table == "tags"]
    link_insert = [params for table, params in inserts if table == "card_tags"]

    assert tag_insert == [("alpha", "mid", "zeta")]
    assert link_insert == [
        (
            card.card_id, ids["zeta"],
            card.card_id, ids["alpha"],
            card.card_id, ids["mid"],
        )
    ]
    assert ids["zeta"] < ids["alpha"] < ids["mid"]


def test_reconcile_logs_card_id_field(run_service, caplog):
    caplog.set_level(logging.INFO, logger="app.modules.cards.tags")
    card = run_service(lambda service: service.create(new_card(tags=["a"])))

    records = [r for r in caplog.records if r.getMessage().startswith("Reconciled tags")]
    assert len(records) == 1
    assert records[0].card_id == card.card_id
