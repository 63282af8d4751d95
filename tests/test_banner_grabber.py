"""
Tests for banner grabbing, HTTP header fingerprinting and reverse DNS.
"""
import socket
import time
from unittest.mock import MagicMock, patch

import dns.exception
import pytest
import requests

from network_discovery.config.config_loader import ScanConfig
from network_discovery.scanners.banner_grabber import BannerGrabber
from network_discovery.utils.error_handler import DnsResolutionError


def greeting_server(greeting):
    """Handler sending a greeting, then draining the client's nudge."""
    def handle(sock):
        sock.sendall(greeting)
        sock.recv(64)
    return handle


@pytest.fixture
def grabber(fast_config):
    return BannerGrabber(fast_config)


class TestGrabBanner:
    def test_reads_greeting(self, grabber, tcp_server):
        port = tcp_server(greeting_server(b"220 mail.example.com ESMTP Postfix\r\n"))
        assert grabber.grab_banner("127.0.0.1", port) == "220 mail.example.com ESMTP Postfix"

    def test_sends_crlf_nudge_to_quiet_services(self, grabber, tcp_server):
        received = []

        def handle(sock):
            received.append(sock.recv(16))
            sock.sendall(b"HELLO\r\n")

        port = tcp_server(handle)
        assert grabber.grab_banner("127.0.0.1", port) == "HELLO"
        assert received == [b"\r\n"]

    def test_silent_service_returns_none(self, grabber, tcp_server):
        port = tcp_server(lambda sock: sock.recv(16))
        assert grabber.grab_banner("127.0.0.1", port) is None

    def test_service_that_never_answers_times_out(self, tcp_server):
        grabber = BannerGrabber(ScanConfig(banner_timeout=0.3, banner_grace_period=0.1))

        def handle(sock):
            sock.recv(16)
            sock.recv(16)

        port = tcp_server(handle)
        assert grabber.grab_banner("127.0.0.1", port) is None

    def test_banner_is_capped(self, tcp_server):
        grabber = BannerGrabber(ScanConfig(banner_max_bytes=8, banner_timeout=1.0))
        port = tcp_server(greeting_server(b"A" * 100))
        banner = grabber.grab_banner("127.0.0.1", port)
        assert banner == "A" * 8

    def test_invalid_utf8_is_replaced(self, grabber, tcp_server):
        port = tcp_server(greeting_server(b"SSH-2.0-\xff\xfe\r\n"))
        banner = grabber.grab_banner("127.0.0.1", port)
        assert banner.startswith("SSH-2.0-")
        assert "\ufffd" in banner

    def test_closed_port_returns_none(self, grabber, closed_port):
        assert grabber.grab_banner("127.0.0.1", closed_port) is None

    def test_data_within_grace_period_is_collected(self, grabber, tcp_server):
        def handle(sock):
            sock.sendall(b"220 ")
            time.sleep(0.1)
            sock.sendall(b"ready")
            sock.recv(16)

        port = tcp_server(handle)
        assert grabber.grab_banner("127.0.0.1", port) == "220 ready"

    def test_late_data_returns_once_grace_period_has_passed(self, grabber, tcp_server):
        # grace period is 0.3s from connecting; the first bytes arrive after it
        def handle(sock):
            time.sleep(0.5)
            sock.sendall(b"ONE")
            time.sleep(0.3)
            sock.sendall(b"TWO")
            sock.recv(16)

        port = tcp_server(handle)
        assert grabber.grab_banner("127.0.0.1", port) == "ONE"


class TestHttpBanner:
    def _grabber(self, headers=None, side_effect=None):
        session = MagicMock()
        if side_effect is not None:
            session.head.side_effect = side_effect
        else:
            session.head.return_value = MagicMock(headers=headers or {})
        return BannerGrabber(ScanConfig(http_timeout=3.0), session=session), session

    def test_joins_server_and_powered_by(self):
        grabber, _ = self._grabber({"Server": "Microsoft-IIS/10.0", "X-Powered-By": "ASP.NET"})
        assert grabber.get_http_banner("10.0.0.5", 80) == "Microsoft-IIS/10.0, ASP.NET"

    def test_server_header_only(self):
        grabber, _ = self._grabber({"Server": "nginx/1.18.0"})
        assert grabber.get_http_banner("10.0.0.5", 80) == "nginx/1.18.0"

    def test_no_identifying_headers(self):
        grabber, _ = self._grabber({"Content-Type": "text/html"})
        assert grabber.get_http_banner("10.0.0.5", 80) is None

    def test_https_on_443_without_verification_or_redirects(self):
        grabber, session = self._grabber({"Server": "Apache"})
        grabber.get_http_banner("10.0.0.5", 443)
        session.head.assert_called_once_with(
            "https://10.0.0.5:443/", timeout=3.0, verify=False, allow_redirects=False
        )

    def test_plain_http_on_80(self):
        grabber, session = self._grabber({"Server": "Apache"})
        grabber.get_http_banner("10.0.0.5", 80)
        assert session.head.call_args[0][0] == "http://10.0.0.5:80/"

    def test_request_failure_returns_none(self):
        grabber, _ = self._grabber(side_effect=requests.exceptions.ConnectTimeout("timed out"))
        assert grabber.get_http_banner("10.0.0.5", 443) is None


class TestResolveHostname:
    def test_system_resolver_strips_trailing_dot(self, grabber):
        with patch("socket.gethostbyaddr", return_value=("fileserver.corp.local.", [], ["10.0.0.5"])):
            assert grabber.resolve_hostname("10.0.0.5") == "fileserver.corp.local"

    def test_system_resolver_failure_raises(self, grabber):
        with patch("socket.gethostbyaddr", side_effect=socket.herror(1, "Unknown host")):
            with pytest.raises(DnsResolutionError):
                grabber.resolve_hostname("10.0.0.5")

    def test_custom_servers_use_ptr_lookup(self, grabber):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver = resolver_cls.return_value
            resolver.resolve.return_value = [MagicMock(target="pc-042.lan.")]

            assert grabber.resolve_hostname("10.0.0.42", ["1.1.1.1", "9.9.9.9"]) == "pc-042.lan"

        resolver_cls.assert_called_once_with(configure=False)
        assert resolver.nameservers == ["1.1.1.1", "9.9.9.9"]
        query, record_type = resolver.resolve.call_args[0]
        assert str(query) == "42.0.0.10.in-addr.arpa."
        assert record_type == "PTR"

    def test_custom_server_failure_raises(self, grabber):
        with patch("dns.resolver.Resolver") as resolver_cls:
            resolver_cls.return_value.resolve.side_effect = dns.exception.Timeout()
            with pytest.raises(DnsResolutionError):
                grabber.resolve_hostname("10.0.0.42", ["1.1.1.1"])


class TestScan:
    def test_collects_banners_per_port(self, grabber):
        grabber.get_http_banner = MagicMock(return_value="nginx")
        grabber.grab_banner = MagicMock(side_effect=lambda ip, port: "SSH-2.0-OpenSSH" if port == 22 else None)

        banners = grabber.scan("10.0.0.5", open_ports=[22, 80, 3389])

        assert banners == {22: "SSH-2.0-OpenSSH", 80: "nginx"}
        grabber.get_http_banner.assert_called_once_with("10.0.0.5", 80)
