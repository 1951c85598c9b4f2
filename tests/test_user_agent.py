"""
Tests for the User-Agent classifier.

The ordering quirks (iPad as mobile, Android as linux, Opera-with-Chrome as
chrome) are part of the classifier's contract and are asserted as such.
"""

from clicktrail.core.setting import FallbackLabel
from clicktrail.services.user_agent import (
    OTHER_LABELS,
    UNKNOWN_LABELS,
    classify,
    labels_for,
)

from tests.helpers import CHROME_WINDOWS_UA

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
IPAD_UA = (
    "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/604.1"
)
ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
EDGE_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
OPERA_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 OPR/106.0.0.0"
)
FIREFOX_LINUX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_MAC_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_1) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15"
)


class TestDeviceType:
    """Device class detection."""

    def test_desktop(self):
        assert classify(CHROME_WINDOWS_UA).device_type == "desktop"

    def test_iphone_is_mobile(self):
        assert classify(IPHONE_UA).device_type == "mobile"

    def test_ipad_is_reported_as_mobile(self):
        assert classify(IPAD_UA).device_type == "mobile"

    def test_generic_tablet(self):
        assert classify("SomeVendor Tablet Browser/1.0").device_type == "tablet"


class TestBrowser:
    def test_chrome(self):
        assert classify(CHROME_WINDOWS_UA).browser == "chrome"

    def test_edge_wins_over_chrome(self):
        assert classify(EDGE_UA).browser == "edge"

    def test_opera_with_chrome_token_is_chrome(self):
        assert classify(OPERA_UA).browser == "chrome"

    def test_plain_opera(self):
        assert classify("Opera/9.80 (Windows NT 6.1) Presto/2.12.388").browser == "opera"

    def test_firefox(self):
        assert classify(FIREFOX_LINUX_UA).browser == "firefox"

    def test_safari(self):
        assert classify(SAFARI_MAC_UA).browser == "safari"

    def test_unrecognised_uses_fallback(self):
        assert classify("curl/8.4.0").browser == "unknown"
        assert classify("curl/8.4.0", OTHER_LABELS).browser == "other"


class TestOperatingSystem:
    def test_windows(self):
        assert classify(CHROME_WINDOWS_UA).os == "windows"

    def test_macos(self):
        assert classify(SAFARI_MAC_UA).os == "macos"

    def test_android_is_reported_as_linux(self):
        result = classify(ANDROID_UA)
        assert result.os == "linux"
        assert result.device_type == "mobile"

    def test_ios_without_mac_os_token(self):
        assert classify("MyApp/2.0 (iPhone; iOS 17.0)").os == "ios"

    def test_unrecognised_os_uses_fallback(self):
        assert classify("curl/8.4.0").os == "unknown"


class TestFallbackLabels:
    def test_missing_user_agent(self):
        result = classify(None)
        assert (result.device_type, result.browser, result.os) == ("desktop", "unknown", "unknown")

    def test_empty_user_agent_with_other_labels(self):
        result = classify("", OTHER_LABELS)
        assert (result.browser, result.os) == ("other", "other")

    def test_labels_for_setting(self):
        assert labels_for(FallbackLabel.unknown) == UNKNOWN_LABELS
        assert labels_for(FallbackLabel.other) == OTHER_LABELS
