import pytest

from ai_aggregator.ratelimit import derive_client_key


class TestDeriveClientKey:
    def test_api_key_first(self):
        headers = {
            "X-API-Key": "key-1",
            "Authorization": "Bearer tok",
            "X-Real-IP": "10.0.0.1",
        }
        assert derive_client_key(headers, "127.0.0.1") == "apikey:key-1"

    def test_bearer_token(self):
        headers = {"Authorization": "Bearer tok-9", "X-Real-IP": "10.0.0.1"}
        assert derive_client_key(headers) == "bearer:tok-9"

    @pytest.mark.parametrize("auth", ["Basic dXNlcjpwYXNz", "Bearer", "Bearer    ", "tok"])
    def test_non_bearer_authorization_falls_through(self, auth):
        assert derive_client_key({"Authorization": auth}, "1.1.1.1") == "ip:1.1.1.1"

    def test_real_ip(self):
        headers = {"X-Real-IP": "10.0.0.1", "X-Forwarded-For": "10.0.0.2"}
        assert derive_client_key(headers, "127.0.0.1") == "ip:10.0.0.1"

    def test_first_forwarded_hop(self):
        headers = {"X-Forwarded-For": "203.0.113.5, 10.0.0.1, 10.0.0.2"}
        assert derive_client_key(headers) == "ip:203.0.113.5"

    def test_remote_addr(self):
        assert derive_client_key({}, "192.168.1.9") == "ip:192.168.1.9"

    def test_unknown(self):
        assert derive_client_key({}) == "ip:unknown"

    def test_header_names_case_insensitive(self):
        assert derive_client_key({"x-api-key": "abc"}) == "apikey:abc"
        assert derive_client_key({"authorization": "Bearer t"}) == "bearer:t"
        assert derive_client_key({"x-real-ip": "1.2.3.4"}) == "ip:1.2.3.4"

    def test_api_key_cannot_collide_with_ip(self):
        assert derive_client_key({"X-API-Key": "1.2.3.4"}) != derive_client_key(
            {}, "1.2.3.4"
        )
