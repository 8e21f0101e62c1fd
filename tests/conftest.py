from pathlib import Path
import itertools
import random
import sys
from typing import Iterable, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bot_core.engine import create_engine
from transport.base import (
    GroupMetadata,
    GroupParticipant,
    InboundMessage,
    MediaRef,
    MessageRef,
    QuotedContext,
    TransportError,
)
from utils import path_utils
from utils.config import BotSettings
from utils.identity import AddressScheme

BOT = "15550000000@s.whatsapp.net"
OWNER = "15550000001@s.whatsapp.net"
ADMIN = "15550000002@s.whatsapp.net"
MEMBER = "15550000003@s.whatsapp.net"
OTHER = "15550000004@s.whatsapp.net"
GROUP = "120363000000000001@g.us"
NOW = 1_700_000_000.0


class FakeTransport:
    """Records every outbound call the engine makes."""

    scheme = AddressScheme()

    def __init__(self, self_id: str = BOT) -> None:
        self.self_id = self_id
        self.sent = []
        self.media = []
        self.polls = []
        self.deleted = []
        self.participant_updates = []
        self.policy_updates = []
        self.metadata = {}
        self.downloads = {}
        self.groups = []
        self.metadata_error: Optional[Exception] = None
        self.fail_participants = set()
        self.fail_policy = False
        self.fail_send = False
        self._ids = itertools.count(1)

    def set_group(self, group: str, *, admins: Iterable[str] = (), members: Iterable[str] = ()) -> None:
        participants = [GroupParticipant(id=user, role="admin") for user in admins]
        participants += [GroupParticipant(id=user) for user in members]
        self.metadata[group] = GroupMetadata(id=group, subject="Test group", participants=participants)

    def texts(self, target: Optional[str] = None):
        return [entry["text"] for entry in self.sent if target is None or entry["target"] == target]

    def mutation_calls(self) -> int:
        return len(self.participant_updates) + len(self.policy_updates) + len(self.deleted)

    def _ref(self, target: str) -> MessageRef:
        return MessageRef(chat=target, id=f"out-{next(self._ids)}", from_me=True)

    async def send_text(self, target, text, *, quoted=None, mentions=()):
        if self.fail_send:
            raise TransportError("send failed")
        self.sent.append({"target": target, "text": text, "quoted": quoted, "mentions": list(mentions)})
        return self._ref(target)

    async def send_media(self, target, data, kind, *, caption=None, quoted=None):
        self.media.append({"target": target, "data": data, "kind": kind, "caption": caption})
        return self._ref(target)

    async def send_poll(self, target, question, options, *, quoted=None):
        self.polls.append({"target": target, "question": question, "options": list(options)})
        return self._ref(target)

    async def delete_message(self, ref):
        self.deleted.append(ref)

    async def update_group_participants(self, group, ids, action):
        for user in ids:
            if user in self.fail_participants:
                raise TransportError(f"cannot {action.value} {user}")
        self.participant_updates.append((group, list(ids), action))

    async def update_group_send_policy(self, group, policy):
        if self.fail_policy:
            raise TransportError("not an admin anymore")
        self.policy_updates.append((group, policy))

    async def fetch_group_metadata(self, group):
        if self.metadata_error is not None:
            raise self.metadata_error
        try:
            return self.metadata[group]
        except KeyError:
            raise TransportError(f"unknown group {group}") from None

    async def list_groups(self):
        return list(self.groups)

    async def download_media(self, media):
        try:
            return self.downloads[media.ref]
        except KeyError:
            raise TransportError("media expired") from None


class FakeClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingSleep:
    """Return immediately, remembering the requested delays."""

    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_message(
    text: Optional[str],
    *,
    sender: str = MEMBER,
    chat: str = GROUP,
    quoted: Optional[QuotedContext] = None,
    mentions: Iterable[str] = (),
    media: Optional[MediaRef] = None,
    from_me: bool = False,
    message_id: str = "in-1",
) -> InboundMessage:
    return InboundMessage(
        chat=chat,
        sender=sender,
        text=text,
        ref=MessageRef(chat=chat, id=message_id, from_me=from_me),
        is_group=chat.endswith("@g.us"),
        quoted=quoted,
        mentions=list(mentions),
        media=media,
    )


def quote_of(author: str, *, chat: str = GROUP, media: Optional[MediaRef] = None) -> QuotedContext:
    return QuotedContext(ref=MessageRef(chat=chat, id="quoted-1"), author=author, media=media)


@pytest.fixture(autouse=True)
def override_data_dir(tmp_path):
    original = path_utils.data_dir
    path_utils.set_data_dir(tmp_path)
    yield
    path_utils.data_dir = original


@pytest.fixture()
def settings() -> BotSettings:
    return BotSettings(bot_token="test-token", owner_id=OWNER, prefix=".")


@pytest.fixture()
def transport() -> FakeTransport:
    fake = FakeTransport()
    fake.set_group(GROUP, admins=[BOT, ADMIN], members=[MEMBER, OWNER, OTHER])
    return fake


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
async def make_engine(settings, transport, clock):
    engines = []

    async def factory(*, settings=settings, transport=transport, **options):
        options.setdefault("rng", random.Random(0))
        options.setdefault("clock", clock)
        engine = await create_engine(settings, transport, **options)
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        await engine.shutdown()


@pytest.fixture()
async def engine(make_engine):
    return await make_engine()
