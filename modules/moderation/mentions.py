"""Collect the users a moderation command targets."""

from __future__ import annotations

import logging
import re
from typing import Optional, Set

from transport.base import InboundMessage
from utils.identity import AddressScheme

MENTION_PATTERN = re.compile(r"@(\d{5,})")


def parse_mentions_from_args(arg_text: Optional[str], scheme: AddressScheme) -> Set[str]:
    if not arg_text:
        return set()
    return {scheme.user(number) for number in MENTION_PATTERN.findall(arg_text)}


def extract_mentions(
    message: InboundMessage, arg_text: Optional[str], scheme: AddressScheme
) -> Set[str]:
    """
    Union of the replied-to author, ``@<digits>`` tokens in the arguments and
    the transport's structured mentions, normalised and deduplicated.
    """
    targets: Set[str] = set()
    if message.quoted is not None and message.quoted.author:
        targets.add(scheme.normalize(message.quoted.author))
    targets.update(parse_mentions_from_args(arg_text, scheme))
    targets.update(scheme.normalize(user) for user in message.mentions if user)
    targets.discard("")
    logging.debug("Extracted mentions %s from args=%r", sorted(targets), arg_text)
    return targets
