import pytest

from modules.owner import router as owner_router
from modules.owner.router import EXIT_RESTART, EXIT_SHUTDOWN
from utils.bot_store import BotStore

from conftest import ADMIN, GROUP, OWNER, make_message


@pytest.fixture()
def no_broadcast_delay(monkeypatch):
    monkeypatch.setattr(owner_router.module, "broadcast_delay", 0)


@pytest.mark.parametrize(
    ("command", "reply", "exit_code"),
    [(".shutdown", "🛑 Shutting down.", EXIT_SHUTDOWN), (".restart", "♻️ Restarting...", EXIT_RESTART)],
)
async def test_stop_commands(make_engine, transport, command, reply, exit_code):
    requested = []
    engine = await make_engine(stop_callback=requested.append)

    await engine.on_message(make_message(command, sender=OWNER))

    assert transport.texts() == [reply]
    assert requested == [exit_code]


async def test_stop_command_ignored_by_non_owner(make_engine, transport):
    requested = []
    engine = await make_engine(stop_callback=requested.append)

    await engine.on_message(make_message(".shutdown", sender=ADMIN))

    assert requested == []


async def test_setprefix_switches_parsing(engine, transport):
    await engine.on_message(make_message(".setprefix ! extra", sender=OWNER))

    assert transport.texts() == ["✅ Prefix set to: !"]
    assert BotStore(engine.context.store.path).load().prefix == "!"

    await engine.on_message(make_message(".roll", sender=OWNER))
    assert len(transport.sent) == 1

    await engine.on_message(make_message("!roll", sender=OWNER))
    assert transport.texts()[-1].startswith("🎲 ")


async def test_broadcast_reaches_known_groups(engine, transport, no_broadcast_delay):
    transport.groups = [GROUP, "120363000000000002@g.us"]
    engine.context.store.group("120363000000000003@g.us")

    await engine.on_message(make_message(".broadcast Maintenance at 5pm", sender=OWNER))

    broadcasts = [entry for entry in transport.sent if entry["text"].startswith("📢")]
    assert [entry["target"] for entry in broadcasts] == [
        "120363000000000001@g.us",
        "120363000000000002@g.us",
        "120363000000000003@g.us",
    ]
    assert broadcasts[0]["text"] == "📢 *Broadcast:*\nMaintenance at 5pm"
    assert transport.texts()[-1] == "✅ Broadcast sent to 3 group(s)."
