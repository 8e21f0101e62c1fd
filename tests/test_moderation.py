import asyncio

import pytest

from modules.moderation.mute_scheduler import UNMUTED_NOTICE, MuteScheduler
from modules.moderation.router import LINK_WARNING, parse_minutes, parse_toggle
from transport.base import ParticipantAction, ParticipantsAdded, SendPolicy
from utils.bot_store import BotStore

from conftest import ADMIN, GROUP, MEMBER, NOW, OTHER, FakeTransport, make_message, quote_of


@pytest.mark.parametrize(
    ("value", "expected"),
    [("on", True), ("ON please", True), ("off", False), ("0", False), ("maybe", None), ("", None)],
)
def test_parse_toggle(value, expected):
    assert parse_toggle(value) is expected


@pytest.mark.parametrize(("value", "expected"), [("5", 5), (" 10 min", 10), ("abc", 0), ("-3", -3)])
def test_parse_minutes(value, expected):
    assert parse_minutes(value) == expected


async def test_kick_reply_target(engine, transport):
    await engine.on_message(make_message(".kick", sender=ADMIN, quoted=quote_of(MEMBER)))

    assert transport.participant_updates == [(GROUP, [MEMBER], ParticipantAction.REMOVE)]
    assert transport.texts() == ["✅ Removed: @15550000003"]
    assert transport.sent[0]["mentions"] == [MEMBER]


async def test_kick_without_targets(engine, transport):
    await engine.on_message(make_message(".kick", sender=ADMIN))

    assert transport.texts() == ["Mention users to kick."]
    assert transport.participant_updates == []


async def test_promote_reports_partial_failure(engine, transport):
    transport.fail_participants.add(OTHER)

    await engine.on_message(
        make_message(".promote @15550000003 @15550000004", sender=ADMIN)
    )

    assert transport.participant_updates == [(GROUP, [MEMBER], ParticipantAction.PROMOTE)]
    assert transport.texts() == ["✅ Promoted: @15550000003\n❌ Could not promote: @15550000004"]


async def test_demote_uses_structured_mentions(engine, transport):
    await engine.on_message(make_message(".demote", sender=ADMIN, mentions=[OTHER]))

    assert transport.participant_updates == [(GROUP, [OTHER], ParticipantAction.DEMOTE)]


async def test_welcome_toggle_is_persisted(engine, transport):
    await engine.on_message(make_message(".welcome on", sender=ADMIN))

    assert transport.texts() == ["Welcome is now *ON*"]
    reloaded = BotStore(engine.context.store.path).load()
    assert reloaded.group(GROUP).welcome_enabled is True


async def test_toggle_rejects_unknown_value(engine, transport):
    await engine.on_message(make_message(".antilink maybe", sender=ADMIN))

    assert transport.texts() == ["Use: .antilink on|off"]
    assert engine.context.store.group(GROUP).antilink_enabled is False


async def test_welcome_greets_new_participants(engine, transport):
    joined = (MEMBER, OTHER)
    await engine.on_participants_added(ParticipantsAdded(group=GROUP, participants=joined))
    assert transport.sent == []

    with engine.context.store.edit_group(GROUP) as config:
        config.welcome_enabled = True
    await engine.on_participants_added(ParticipantsAdded(group=GROUP, participants=joined))

    assert transport.texts() == ["👋 Welcome @15550000003, @15550000004!"]
    assert transport.sent[0]["mentions"] == [MEMBER, OTHER]


async def test_antilink_removes_links_from_members(engine, transport):
    with engine.context.store.edit_group(GROUP) as config:
        config.antilink_enabled = True
    message = make_message("join us at HTTPS://spam.example", sender=MEMBER)

    await engine.on_message(message)

    assert transport.deleted == [message.ref]
    assert transport.texts() == [LINK_WARNING]


async def test_antilink_exempts_admins(engine, transport):
    with engine.context.store.edit_group(GROUP) as config:
        config.antilink_enabled = True

    await engine.on_message(make_message("https://docs.example", sender=ADMIN))

    assert transport.deleted == []
    assert transport.sent == []


async def test_antilink_disabled_by_default(engine, transport):
    await engine.on_message(make_message("https://spam.example", sender=MEMBER))

    assert transport.deleted == []


async def test_antilink_leaves_command_dispatch_alone(engine, transport):
    with engine.context.store.edit_group(GROUP) as config:
        config.antilink_enabled = True

    await engine.on_message(make_message(".8ball http://is.it?", sender=ADMIN))

    assert transport.deleted == []
    assert transport.texts()[-1].startswith("🎱 ")


async def test_mute_schedules_single_unmute(engine, transport):
    await engine.on_message(make_message(".mute 5", sender=ADMIN))

    assert transport.policy_updates == [(GROUP, SendPolicy.ADMINS_ONLY)]
    assert transport.texts() == ["🔇 Group muted for 5 minute(s)."]
    schedule = engine.context.mutes.pending(GROUP)
    assert schedule.expires_at == NOW + 300
    assert engine.context.mutes.pending_groups() == [GROUP]
    assert engine.context.store.mutes() == {GROUP: NOW + 300}


async def test_mute_rejects_non_positive_minutes(engine, transport):
    await engine.on_message(make_message(".mute 0", sender=ADMIN))
    await engine.on_message(make_message(".mute soon", sender=ADMIN))

    assert transport.texts() == ["Usage: .mute <minutes>"] * 2
    assert transport.policy_updates == []


async def test_remute_replaces_pending_unmute(engine, transport, clock):
    await engine.on_message(make_message(".mute 5", sender=ADMIN))
    first = engine.context.mutes.pending(GROUP)
    clock.now += 60

    await engine.on_message(make_message(".mute 10", sender=ADMIN))
    await asyncio.gather(first.task, return_exceptions=True)

    second = engine.context.mutes.pending(GROUP)
    assert second is not first
    assert first.task.cancelled()
    assert second.expires_at == NOW + 60 + 600
    assert engine.context.store.mutes() == {GROUP: NOW + 660}


async def test_timer_restores_open_policy(make_engine, transport, sleeper):
    engine = await make_engine(sleep=sleeper)

    await engine.on_message(make_message(".mute 5", sender=ADMIN))
    await asyncio.wait_for(engine.context.mutes.pending(GROUP).task, timeout=1)

    assert sleeper.delays == [300]
    assert transport.policy_updates == [
        (GROUP, SendPolicy.ADMINS_ONLY),
        (GROUP, SendPolicy.OPEN),
    ]
    assert transport.texts().count(UNMUTED_NOTICE) == 1
    assert engine.context.mutes.pending(GROUP) is None
    assert engine.context.store.mutes() == {}


async def test_unmute_command_lifts_mute_early(engine, transport):
    await engine.on_message(make_message(".mute 5", sender=ADMIN))
    schedule = engine.context.mutes.pending(GROUP)

    await engine.on_message(make_message(".unmute", sender=ADMIN))
    await asyncio.gather(schedule.task, return_exceptions=True)

    assert schedule.task.cancelled()
    assert transport.policy_updates[-1] == (GROUP, SendPolicy.OPEN)
    assert transport.texts()[-1] == UNMUTED_NOTICE


async def test_failed_unmute_is_logged_not_raised(tmp_path, clock):
    transport = FakeTransport()
    transport.fail_policy = True
    store = BotStore(tmp_path / "store.json").load()
    scheduler = MuteScheduler(store, transport, clock=clock)
    store.set_mute(GROUP, NOW)

    assert await scheduler.fire(GROUP) is False
    assert transport.sent == []
    assert store.mutes() == {}


async def never_wake(delay):
    await asyncio.Event().wait()


async def test_reconcile_restores_persisted_mutes(tmp_path, clock):
    transport = FakeTransport()
    store = BotStore(tmp_path / "store.json").load()
    store.set_mute("expired@g.us", NOW - 10)
    store.set_mute("pending@g.us", NOW + 120)
    scheduler = MuteScheduler(store, transport, clock=clock, sleep=never_wake)

    await scheduler.reconcile()

    assert transport.policy_updates == [("expired@g.us", SendPolicy.OPEN)]
    assert scheduler.pending_groups() == ["pending@g.us"]
    assert store.mutes() == {"pending@g.us": NOW + 120}

    await scheduler.shutdown()
    assert store.mutes() == {"pending@g.us": NOW + 120}


async def test_mute_is_scheduled_even_if_acknowledgement_fails(engine, transport):
    transport.fail_send = True

    await engine.on_message(make_message(".mute 5", sender=ADMIN))

    assert transport.policy_updates == [(GROUP, SendPolicy.ADMINS_ONLY)]
    assert engine.context.mutes.pending(GROUP).expires_at == NOW + 300
    assert engine.context.store.mutes()[GROUP] == NOW + 300
