"""
User-Agent Classifier

Maps a raw User-Agent header to a (device_type, browser, os) triple using
ordered substring rules. The first matching rule wins for each dimension.

The rule order is part of the contract and produces a few well-known
results that must not be "fixed" here:
- iPads are reported as ``mobile`` (the mobile pattern is checked first)
- Opera builds that carry ``Chrome/`` are reported as ``chrome``
- Android devices are reported as ``linux`` (their UA contains "Linux")

The label used when no browser/os rule matches is configurable because the
redirect and admin surfaces historically reported ``other`` and ``unknown``
respectively. One classifier serves both through a LabelSet.
"""

import re
from dataclasses import dataclass
from typing import Optional

from clicktrail.core.setting import FallbackLabel

_MOBILE_PATTERN = re.compile(r"mobile|android|iphone|ipad|ipod")
_TABLET_PATTERN = re.compile(r"tablet")


@dataclass(frozen=True)
class LabelSet:
    """Fallback labels for values the rules cannot identify."""
    browser: str
    os: str


UNKNOWN_LABELS = LabelSet(browser="unknown", os="unknown")
OTHER_LABELS = LabelSet(browser="other", os="other")


def labels_for(fallback: FallbackLabel) -> LabelSet:
    if fallback == FallbackLabel.other:
        return OTHER_LABELS
    return UNKNOWN_LABELS


@dataclass(frozen=True)
class DeviceClass:
    device_type: str
    browser: str
    os: str


def _device_type(ua: str) -> str:
    if _MOBILE_PATTERN.search(ua):
        return "mobile"
    if _TABLET_PATTERN.search(ua):
        return "tablet"
    return "desktop"


def _browser(ua: str, fallback: str) -> str:
    if "edg/" in ua:
        return "edge"
    if "chrome/" in ua:
        return "chrome"
    if "firefox/" in ua:
        return "firefox"
    if "safari/" in ua and "chrome" not in ua:
        return "safari"
    if "opera/" in ua or "opr/" in ua:
        return "opera"
    return fallback


def _os(ua: str, fallback: str) -> str:
    if "windows" in ua:
        return "windows"
    if "mac os" in ua:
        return "macos"
    if "linux" in ua:
        return "linux"
    if "android" in ua:
        return "android"
    if "ios" in ua or "iphone" in ua or "ipad" in ua:
        return "ios"
    return fallback


def classify(user_agent: Optional[str], labels: LabelSet = UNKNOWN_LABELS) -> DeviceClass:
    """
    Classify a User-Agent header.

    Args:
        user_agent: Raw header value, may be None or empty
        labels: Fallback labels for unrecognised browsers/operating systems

    Returns:
        DeviceClass; an absent header yields desktop plus the fallback labels
    """
    if not user_agent:
        return DeviceClass(device_type="desktop", browser=labels.browser, os=labels.os)

    ua = user_agent.lower()
    return DeviceClass(
        device_type=_device_type(ua),
        browser=_browser(ua, labels.browser),
        os=_os(ua, labels.os),
    )
