"""Tests for Selection membership, mode dispatch and UI distribution."""

import logging

import pytest

from weave.core.devices.types import SelectionMode
from weave.core.errors import ErrorKind
from weave.core.selection import Selection, SelectionOption

SHOWCASE = (
    '<img src="a.jpg"><button value="prev">Prev</button>'
    '<p>x</p><button value="next">Next</button>'
)


def _tags(device):
    return [group.tag for group in device.ui_elements]


class TestSelectionBasics:

    def test_select_by_attribute(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1})
        selection = engine.select('.showable[size="small"]')
        assert selection.device_ids() == ["watch0"]
        assert selection.selector == '.showable[size="small"]'
        assert selection.mode is SelectionMode.DEFAULT
        assert selection.option.time_range == 1000

    def test_invalid_selector_gives_empty_selection(self, engine, caplog):
        engine.set_emulated_devices({"phone": 1})
        selection = engine.select('.showable[size="small"')
        assert selection.size() == 0
        assert ErrorKind.INVALID_SELECTOR.value in caplog.text

    def test_unknown_capability_is_non_match(self, engine, caplog):
        engine.set_emulated_devices({"phone": 1})
        with caplog.at_level(logging.WARNING):
            selection = engine.select(".flyable")
        assert selection.size() == 0
        assert ErrorKind.UNKNOWN_CAPABILITY.value in caplog.text

    def test_mode_and_option(self, engine):
        engine.set_emulated_devices({"phone": 2})
        selection = engine.select_all().all({"timeRange": 250, "label": "x"})
        assert selection.mode is SelectionMode.ALL
        assert selection.option == SelectionOption(time_range=250.0, extra={"label": "x"})
        selection.set_mode("combine")
        assert selection.mode is SelectionMode.COMBINE

    def test_engine_mode_shortcuts(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1})
        assert engine.all().mode is SelectionMode.ALL
        assert engine.combine({"time_range": 10}).option.time_range == 10
        assert engine.select_all().size() == 2

    def test_unknown_mode_keeps_current_mode(self, engine, caplog):
        selection = engine.select_all().all()
        assert selection.set_mode("bogus") is selection
        assert selection.mode is SelectionMode.ALL
        assert "unknown selection mode 'bogus'" in caplog.text
        assert selection.set_mode(" Combine ").mode is SelectionMode.COMBINE

    def test_option_without_time_range_uses_engine_window(self, engine):
        engine.time_range_ms = 250.0
        engine.set_emulated_devices({"phone": 1})
        selection = engine.select_all().all({"label": "x"})
        assert selection.option == SelectionOption(time_range=250.0, extra={"label": "x"})
        assert selection.set_option({}).option.time_range == 250.0
        assert Selection(engine, engine.registry.devices).option.time_range == 250.0

    def test_ids_are_unique(self, engine):
        assert engine.select_all().id != engine.select_all().id

    def test_device_names(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1})
        assert engine.select_all().device_names() == "phone, watch"

    def test_run(self, engine):
        seen = []
        selection = engine.select_all()
        assert selection.run(lambda s, data: seen.append((s, data)), 5) is selection
        selection.run(lambda s: seen.append(s))
        assert seen == [(selection, 5), selection]


class TestMembership:

    def test_exclude_by_selector_touches_members_only(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1, "glass": 1})
        selection = engine.select(".showable")
        selection.exclude('.showable[size="small"]')
        assert selection.device_ids() == ["phone0"]
        assert len(engine.registry) == 3

    def test_exclude_selector_outside_members(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1})
        selection = engine.select(":phone")
        selection.exclude(":watch")
        assert selection.device_ids() == ["phone0"]

    def test_exclude_device_and_selection(self, engine):
        engine.set_emulated_devices({"phone": 2, "watch": 1})
        selection = engine.select_all()
        selection.not_(engine.find_by_id("phone0"))
        selection.exclude(engine.select(":watch"))
        assert selection.device_ids() == ["phone1"]

    def test_exclude_invalid_selector_keeps_members(self, engine):
        engine.set_emulated_devices({"phone": 1})
        selection = engine.select_all()
        assert selection.exclude(".[") is selection
        assert selection.size() == 1

    def test_append_keeps_duplicates(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1})
        selection = engine.select_all()
        result = selection.append(engine.select(":watch"))
        assert result is selection
        assert selection.device_ids() == ["phone0", "watch0", "watch0"]

    def test_find_by_joint_and_type(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1, "tablet": 1})
        assert engine.find_by_joint("hand").device_ids() == ["phone0", "tablet0"]
        assert engine.find_by_type("watch").device_ids() == ["watch0"]


class TestDispatch:

    def test_default_mode_prefers_live_members(self, engine):
        engine.add_device(engine.create_device("e1", "phone"))
        engine.add_device(engine.create_device("l1", "phone", live=True))
        engine.add_device(engine.create_device("l2", "phone", live=True))
        chosen = []
        selection = engine.select(":phone")
        for _ in range(40):
            selection.play("a.mp3", callback=lambda d: chosen.append(d.id))
        assert set(chosen) <= {"l1", "l2"}
        assert len(chosen) == 40

    def test_default_mode_without_live_members_uses_any(self, engine):
        engine.set_emulated_devices({"phone": 3})
        chosen = set()
        selection = engine.select(":phone")
        for _ in range(60):
            selection.wakeup()
            selection.call("555", callback=lambda d: chosen.add(d.id))
        assert chosen <= {"phone0", "phone1", "phone2"}
        assert len(chosen) > 1

    def test_all_mode_shows_on_every_member(self, engine, renderer):
        engine.set_emulated_devices({"phone": 1, "tablet": 1})
        engine.select_all().all().show("<p>hello</p>")
        for device_id in ("phone0", "tablet0"):
            assert 'id="rootPanel"' in renderer.screen(device_id)
            assert "<p>hello</p>" in renderer.screen(device_id)

    def test_cards_for_watch(self, engine, renderer):
        engine.set_emulated_devices({"watch": 1})
        engine.select(":watch").show('<button value="go">Go</button><button value="stop">Stop</button>')
        assert renderer.screen("watch0") == '<button value="go" class="go" src="">Go</button>'

    def test_empty_selection_logs_no_device(self, engine, caplog):
        selection = engine.select(":phone")
        assert selection.show("<p>x</p>") is selection
        assert selection.play("a.mp3") is selection
        assert ErrorKind.NO_DEVICE_AVAILABLE.value in caplog.text
        assert '"show"' in caplog.text

    def test_removed_member_is_skipped(self, engine):
        engine.set_emulated_devices({"phone": 1, "watch": 1})
        selection = engine.select_all().all()
        engine.delete_device("watch0")
        played = []
        selection.play("a.mp3", callback=lambda d: played.append(d.id))
        selection.show("<p>still fine</p>")
        assert played == ["phone0"]

    def test_all_members_removed(self, engine, caplog):
        engine.set_emulated_devices({"phone": 1})
        selection = engine.select_all()
        engine.delete_device("phone0")
        selection.show("<p>x</p>")
        assert ErrorKind.NO_DEVICE_AVAILABLE.value in caplog.text

    def test_callback_error_is_contained(self, engine):
        engine.set_emulated_devices({"phone": 2})

        def broken(device):
            raise RuntimeError("boom")

        played = []
        selection = engine.select_all().all()
        selection.play("a.mp3", callback=broken)
        selection.play("b.mp3", callback=lambda d: played.append(d.id))
        assert played == ["phone0", "phone1"]

    def test_fan_out_uses_members_from_dispatch_start(self, engine):
        engine.set_emulated_devices({"phone": 3})
        selection = engine.select_all().all()
        shown = []

        def drop_last(device):
            shown.append(device.id)
            selection.exclude(engine.find_by_id("phone2"))

        selection.show("<p>x</p>", callback=drop_last)
        assert shown == ["phone0", "phone1", "phone2"]
        assert all(engine.find_by_id(i).has_ui for i in shown)
        assert selection.device_ids() == ["phone0", "phone1"]

        played = []
        selection.play("a.mp3", callback=lambda d: (played.append(d.id), selection.exclude(d)))
        assert played == ["phone0", "phone1"]
        assert selection.size() == 0

    def test_live_devices_receive_transport_messages(self, engine, transport):
        engine.device_joined("p1", "phone", "Pixel")
        engine.set_emulated_devices({"watch": 1})
        engine.select_all().all().show("<p>hi</p>")
        assert "show" in transport.verbs_for("p1")
        assert "wakeup" in transport.verbs_for("p1")
        assert transport.verbs_for("watch0") == []

    def test_live_watch_receives_element_groups(self, engine, transport):
        engine.device_joined("w1", "watch")
        engine.select("#watch").show('<button value="a">A</button>')
        payload = [p for dev, verb, p in transport.sent if dev == "w1" and verb == "show"][0]
        assert payload == [{"type": "BUTTON", "members": [{"html": "A", "val": "a", "id": None, "src": None}]}]

    def test_start_and_kill_app(self, engine, renderer, transport):
        engine.device_joined("p1", "phone")
        selection = engine.select(":phone")
        selection.start_app("maps")
        assert renderer.screen("p1") == '<div class="app appmaps"></div>'
        selection.kill_app("maps")
        assert renderer.screen("p1") == ""
        assert transport.verbs_for("p1") == ["startApp", "killApp"]

    def test_reset_clears_ui(self, engine, transport):
        engine.device_joined("p1", "phone")
        selection = engine.select(":phone")
        selection.show("<p>x</p>")
        device = engine.find_by_id("p1")
        assert device.has_ui
        selection.reset()
        assert not device.has_ui
        assert device.selection_id is None
        assert transport.verbs_for("p1")[-1] == "reset"

    def test_show_records_selection_id(self, engine):
        engine.set_emulated_devices({"phone": 1})
        selection = engine.select(":phone")
        selection.show("<p>x</p>")
        assert engine.find_by_id("phone0").selection_id == selection.id


class TestCombineMode:

    def test_image_and_remainder_assignment(self, engine):
        engine.set_emulated_devices({"watch": 1, "phone": 1, "tablet": 1})
        engine.combine().show(SHOWCASE)
        watch, phone, tablet = (engine.find_by_id(i) for i in ("watch0", "phone0", "tablet0"))
        assert _tags(phone) == ["IMG"]
        assert phone.ui_elements[0].members[0].src == "a.jpg"
        assert _tags(watch) == ["BUTTON", "P", "BUTTON"]
        assert [m.val for g in watch.ui_elements for m in g.members] == ["prev", None, "next"]
        assert not tablet.has_ui

    def test_devices_with_ui_are_skipped(self, engine, caplog):
        engine.set_emulated_devices({"watch": 1, "phone": 1, "tablet": 1})
        selection = engine.combine()
        selection.show(SHOWCASE)
        selection.show(SHOWCASE)
        assert _tags(engine.find_by_id("tablet0")) == ["IMG"]
        assert "no free device" in caplog.text

    def test_image_without_large_screen_joins_remainder(self, engine):
        engine.set_emulated_devices({"watch": 1})
        engine.combine().show(SHOWCASE)
        assert _tags(engine.find_by_id("watch0")) == ["IMG", "BUTTON", "P", "BUTTON"]

    def test_text_only_goes_to_first_free_member(self, engine):
        engine.set_emulated_devices({"watch": 1, "phone": 1})
        engine.combine().show("just words")
        assert _tags(engine.find_by_id("watch0")) == ["P"]
        assert not engine.find_by_id("phone0").has_ui

    def test_start_app_needs_normal_screen(self, engine, renderer, caplog):
        engine.set_emulated_devices({"watch": 1, "phone": 1})
        engine.combine().start_app("maps")
        assert renderer.screen("phone0") == '<div class="app appmaps"></div>'
        assert renderer.screen("watch0") is None

        engine.set_emulated_devices({"watch": 2})
        engine.combine().start_app("maps")
        assert "Unable to start the app" in caplog.text

    def test_other_actions_pick_one_member(self, engine):
        engine.set_emulated_devices({"phone": 3})
        played = []
        engine.combine().play("a.mp3", callback=lambda d: played.append(d.id))
        assert len(played) == 1


class TestShownElements:

    def test_get_device_has_ui_by_id(self, engine):
        engine.set_emulated_devices({"phone": 1, "tablet": 1})
        engine.select(":phone").show('<button id="b1" value="go">Go</button>')
        holder = engine.select_all().get_device_has_ui_by_id("b1")
        assert holder is engine.find_by_id("phone0")

        missing = engine.select_all().get_device_has_ui_by_id("nope")
        assert isinstance(missing, Selection)
        assert missing.size() == 0

    def test_several_holders_give_a_selection(self, engine):
        engine.set_emulated_devices({"phone": 2})
        engine.select_all().all().show('<p id="t">x</p>')
        holders = engine.select_all().get_device_has_ui_by_id("t")
        assert isinstance(holders, Selection)
        assert holders.device_ids() == ["phone0", "phone1"]

    def test_update_ui_attr(self, engine, renderer):
        engine.set_emulated_devices({"phone": 1})
        selection = engine.select(":phone")
        selection.show('<button id="b1" value="go">Go</button><p id="t">x</p>')
        selection.update_ui_attr("b1", "html", "Stop")
        selection.update_ui_attr("t", "value", "v2")
        phone = engine.find_by_id("phone0")
        assert phone.ui_elements[0].members[0].html == "Stop"
        assert phone.ui_elements[1].members[0].val == "v2"
        assert '<button id="b1" value="go">Stop</button>' in renderer.screen("phone0")
        assert phone.selection_id == selection.id

    def test_update_on_one_device_leaves_siblings_alone(self, engine, renderer):
        engine.set_emulated_devices({"phone": 2})
        engine.select_all().all().show('<p id="t">x</p>')
        Selection(engine, [engine.find_by_id("phone0")]).update_ui_attr("t", "html", "changed")

        assert engine.find_by_id("phone0").ui_elements[0].members[0].html == "changed"
        assert engine.find_by_id("phone1").ui_elements[0].members[0].html == "x"
        assert "changed" in renderer.screen("phone0")
        assert "changed" not in renderer.screen("phone1")
