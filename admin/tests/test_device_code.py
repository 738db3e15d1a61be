"""Tests for device-code detection."""
from serverwave_console.services.device_code import (
    DeviceCodeDetection, DeviceCodeWatcher, WatcherState, scan_for_device_code,
)
from serverwave_console.services.status import SessionStatus

URL = 'https://oauth.accounts.hytale.com/oauth2/device/verify?user_code=ABCD1234'


def _buffer(size, url_at=None, line=None):
    lines = [f'[Server] line {i}' for i in range(size)]
    if url_at is not None:
        lines[url_at] = line or f'Visit {URL} to authenticate'
    return lines


# ── scan_for_device_code ──────────────────────────────────────────────────────

class TestScan:
    def test_detects_inside_window(self):
        # line 35 of 40 is within the last 30
        found = scan_for_device_code(_buffer(40, url_at=34))
        assert found == DeviceCodeDetection(URL, 'ABCD1234')

    def test_ignores_outside_window(self):
        # line 10 of 40 is outside the last 30
        assert scan_for_device_code(_buffer(40, url_at=9)) is None

    def test_detected_once_window_reaches_line(self):
        lines = _buffer(40, url_at=9)
        assert scan_for_device_code(lines) is None
        # a 39-line buffer puts index 9 in the last 30
        assert scan_for_device_code(lines[:39]) is not None
        assert scan_for_device_code(lines, window=31) is not None

    def test_strips_sgr_and_control_chars(self):
        line = ('\x1b[36mhttps://oauth.accounts.hytale.com/oauth2/device/verify'
                '?user_code=\x1b[1mZX\r9Q\x1b[0m')
        found = scan_for_device_code([line])
        assert found.code == 'ZX9Q'

    def test_newest_match_wins(self):
        lines = [
            f'{URL}',
            'https://oauth.accounts.hytale.com/oauth2/device/verify?user_code=NEWER1',
        ]
        assert scan_for_device_code(lines).code == 'NEWER1'

    def test_code_ends_at_first_non_alphanumeric(self):
        base = 'https://oauth.accounts.hytale.com/oauth2/device/verify?user_code='
        assert scan_for_device_code([base + 'ABCD_x']).code == 'ABCD'
        assert scan_for_device_code([base + 'ABCDé']).code == 'ABCD'
        assert scan_for_device_code([base + 'ABCD rest']).code == 'ABCD'
        assert scan_for_device_code([base + 'ABCD&lang=en']).url == base + 'ABCD'

    def test_url_without_code_not_matched(self):
        assert scan_for_device_code(
            ['https://oauth.accounts.hytale.com/oauth2/device/verify?user_code=']
        ) is None

    def test_other_hosts_not_matched(self):
        assert scan_for_device_code(
            ['https://evil.example.com/oauth2/device/verify?user_code=ABCD']
        ) is None

    def test_zero_window_scans_nothing(self):
        assert scan_for_device_code([URL], window=0) is None


# ── DeviceCodeWatcher ─────────────────────────────────────────────────────────

class TestWatcher:
    def test_latches_first_detection(self):
        w = DeviceCodeWatcher()
        w.observe([URL], SessionStatus.RUNNING)
        assert w.state is WatcherState.DETECTED
        assert w.visible.code == 'ABCD1234'
        # Further output does not replace the latched detection
        w.observe([URL.replace('ABCD1234', 'OTHER')], SessionStatus.RUNNING)
        assert w.visible.code == 'ABCD1234'

    def test_no_scan_in_terminal_state(self):
        w = DeviceCodeWatcher()
        assert w.observe([URL], SessionStatus.STOPPED) is None
        assert w.observe([URL], SessionStatus.ERROR) is None
        assert w.visible is None

    def test_unknown_status_scans(self):
        w = DeviceCodeWatcher()
        assert w.observe([URL], None) is not None

    def test_dismiss_hides_and_blocks_redetection(self):
        w = DeviceCodeWatcher()
        w.observe([URL], SessionStatus.RUNNING)
        w.dismiss()
        assert w.dismissed
        assert w.visible is None
        assert w.detection is not None
        assert w.observe([URL], SessionStatus.RUNNING) is None

    def test_reset_allows_redetection(self):
        w = DeviceCodeWatcher()
        w.observe([URL], SessionStatus.RUNNING)
        w.dismiss()
        w.reset()
        assert not w.dismissed
        assert w.detection is None
        assert w.observe([URL], SessionStatus.RUNNING) is not None

    def test_forget_keeps_dismissal(self):
        w = DeviceCodeWatcher()
        w.dismiss()
        w.forget()
        assert w.dismissed

    def test_to_dict(self):
        w = DeviceCodeWatcher()
        assert w.to_dict() == {'detection': None, 'dismissed': False}
        w.observe([URL], SessionStatus.RUNNING)
        assert w.to_dict()['detection'] == {'url': URL, 'code': 'ABCD1234'}
