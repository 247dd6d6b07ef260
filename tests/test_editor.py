"""Tests for the editing session: caching, mutations, dirty flag, save and reset."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from menu_pages import BEER_HTML, SIGNATURE_HTML, parse

from menudesk.models.edit_request import EditCommand
from menudesk.services.editor import EditorSession
from menudesk.services.errors import LoadFailure, WriteSinkFailure


def _loader(html: str = SIGNATURE_HTML) -> AsyncMock:
    return AsyncMock(side_effect=lambda definition: (html, parse(html)))


def _open(session: EditorSession, page_id: str = "signature"):
    return asyncio.run(session.open_page(page_id))


def _fields(page):
    return [
        [(i.name, i.description, [p.value for p in i.prices], i.removed) for i in s.items]
        for s in page.sections
    ]


class TestOpenPage:
    def test_loads_once_and_caches(self):
        loader = _loader()
        session = EditorSession(loader=loader)
        first = _open(session)
        second = _open(session)
        assert first is second
        assert loader.await_count == 1
        assert first.dirty is False

    def test_concurrent_opens_share_one_fetch(self):
        loader = _loader()
        session = EditorSession(loader=loader)

        async def open_twice():
            return await asyncio.gather(session.open_page("signature"), session.open_page("signature"))

        first, second = asyncio.run(open_twice())
        assert first is second
        assert loader.await_count == 1

    def test_unknown_page(self):
        session = EditorSession(loader=_loader())
        with pytest.raises(LookupError):
            _open(session, "cocktails")

    def test_load_failure_caches_nothing(self):
        loader = AsyncMock(side_effect=LoadFailure("Failed to fetch index.html"))
        session = EditorSession(loader=loader)
        with pytest.raises(LoadFailure):
            _open(session)
        assert session.cached("signature") is None

        loader.side_effect = lambda definition: (SIGNATURE_HTML, parse(SIGNATURE_HTML))
        assert _open(session).sections

    def test_page_without_items_loads(self):
        html = "<html><body><main><section class='misc-section'><h2>Soon</h2></section></main></body></html>"
        page = _open(EditorSession(loader=_loader(html)))
        assert page.sections == []


class TestDirtyLifecycle:
    def _command(self, page, **kwargs):
        section = page.sections[0]
        defaults = {"section_id": section.id, "item_id": section.items[0].id}
        return EditCommand(**{**defaults, **kwargs})

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"action": "set_field", "field": "name", "value": "Rose Spritz"},
            {"action": "add_item"},
            {"action": "toggle_removed"},
        ],
    )
    def test_every_mutation_sets_dirty(self, kwargs):
        session = EditorSession(loader=_loader())
        page = _open(session)
        assert session.apply_edit("signature", self._command(page, **kwargs)) is True
        assert page.dirty is True
        assert session.has_unsaved_changes() is True

    def test_successful_save_clears_dirty(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        session.apply_edit("signature", self._command(page, action="toggle_removed"))

        delivered = []
        content = asyncio.run(
            session.save_page("signature", lambda name, text, media: delivered.append((name, media)))
        )
        assert delivered == [("index.html", "text/html")]
        assert content.startswith("<!DOCTYPE html>")
        assert page.dirty is False

    def test_export_keeps_dirty_until_marked_saved(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        session.apply_edit("signature", self._command(page, action="toggle_removed"))

        content = session.export_page("signature")
        assert content.startswith("<!DOCTYPE html>")
        assert page.dirty is True

        session.mark_saved("signature")
        assert page.dirty is False
        assert session.has_unsaved_changes() is False

    def test_async_sink_is_awaited(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        session.apply_edit("signature", self._command(page, action="add_item"))
        sink = AsyncMock()
        asyncio.run(session.save_page("signature", sink))
        sink.assert_awaited_once()
        assert page.dirty is False

    def test_failed_sink_keeps_dirty(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        session.apply_edit("signature", self._command(page, action="add_item"))

        def broken_sink(name, text, media):
            raise OSError("clipboard unavailable")

        with pytest.raises(WriteSinkFailure):
            asyncio.run(session.save_page("signature", broken_sink))
        assert page.dirty is True

    def test_reset_restores_original_values(self):
        loader = _loader()
        session = EditorSession(loader=loader)
        page = _open(session)
        original = _fields(page)

        session.apply_edit("signature", self._command(page, action="set_field", field="price", price_index=0, value="99"))
        session.apply_edit("signature", self._command(page, action="toggle_removed"))
        session.apply_edit("signature", self._command(page, action="add_item"))
        asyncio.run(session.save_page("signature", lambda *args: None))

        reset = asyncio.run(session.reset("signature"))
        assert reset is not page
        assert reset.dirty is False
        assert _fields(reset) == original
        assert session.cached("signature") is reset
        assert loader.await_count == 1

    def test_status_reports_each_page(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        session.apply_edit("signature", self._command(page, action="add_item"))
        status = session.status()
        assert status["signature"] is True
        assert status["classic"] is False


class TestApplyEdit:
    def test_set_price_creates_missing_entry(self):
        session = EditorSession(loader=_loader(BEER_HTML))
        page = _open(session, "beer")
        section = page.sections[0]
        item = section.items[0]
        item.prices = []
        session.apply_edit(
            "beer",
            EditCommand(action="set_field", section_id=section.id, item_id=item.id, field="price", price_index=1, value="200"),
        )
        assert [(p.label, p.value) for p in item.prices] == [("Price 1", ""), ("Price 2", "200")]

    def test_add_item_is_blank(self):
        session = EditorSession(loader=_loader(BEER_HTML))
        page = _open(session, "beer")
        section = page.sections[0]
        session.apply_edit("beer", EditCommand(action="add_item", section_id=section.id))
        item = section.items[-1]
        assert item.is_new is True
        assert item.removed is False
        assert item.name == ""
        assert item.description is None
        assert [(p.label, p.value) for p in item.prices] == [("Price 1", ""), ("Price 2", "")]
        assert len(section.container.select(section.item_selector)) == 3

    def test_new_item_ids_are_unique(self):
        session = EditorSession(loader=_loader(BEER_HTML))
        page = _open(session, "beer")
        section = page.sections[0]
        for _ in range(2):
            session.apply_edit("beer", EditCommand(action="add_item", section_id=section.id))
        ids = [item.id for item in section.items]
        assert len(ids) == len(set(ids))

    def test_toggle_keeps_order(self):
        session = EditorSession(loader=_loader(BEER_HTML))
        page = _open(session, "beer")
        section = page.sections[0]
        before = [item.id for item in section.items]
        session.apply_edit("beer", EditCommand(action="toggle_removed", section_id=section.id, item_id=before[1]))
        assert [item.id for item in section.items] == before
        assert section.items[1].removed is True

    def test_unknown_section(self):
        session = EditorSession(loader=_loader())
        _open(session)
        with pytest.raises(LookupError):
            session.apply_edit("signature", EditCommand(action="add_item", section_id="signature-section-9"))

    def test_price_edit_without_index(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        section = page.sections[0]
        with pytest.raises(ValueError):
            session.apply_edit(
                "signature",
                EditCommand(action="set_field", section_id=section.id, item_id=section.items[0].id, field="price"),
            )

    def test_price_index_beyond_labels_is_rejected(self):
        session = EditorSession(loader=_loader())
        page = _open(session)
        section = page.sections[0]
        item = section.items[0]
        assert section.price_labels == ["Price"]
        with pytest.raises(ValueError):
            session.apply_edit(
                "signature",
                EditCommand(
                    action="set_field", section_id=section.id, item_id=item.id, field="price", price_index=500, value="1"
                ),
            )
        assert len(item.prices) == len(section.price_labels)
        assert page.dirty is False

    def test_edit_on_unopened_page(self):
        session = EditorSession(loader=_loader())
        with pytest.raises(LookupError):
            session.apply_edit("signature", EditCommand(action="add_item", section_id="signature-section-0"))
