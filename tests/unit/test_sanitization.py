from utils.logger import sanitize_log_data


def test_registration_body_redaction():
    data = {"name": "Jane", "email": "jane@example.com", "password": "Passw0rd"}
    sanitized = sanitize_log_data(data)

    assert sanitized["name"] == "Jane"
    assert sanitized["email"] == "jane@example.com"
    assert sanitized["password"] == "***REDACTED***"


def test_refresh_token_partial_redaction():
    data = {"refresh_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.payload.signature"}
    sanitized = sanitize_log_data(data)

    assert sanitized["refresh_token"] == "eyJhbGci..."
    assert "signature" not in sanitized["refresh_token"]


def test_short_token_fully_redacted():
    sanitized = sanitize_log_data({"access_token": "abc"})

    assert sanitized["access_token"] == "***REDACTED***"


def test_credentials_and_headers_redacted():
    data = {"LLM_API_KEY": "gsk_live_123", "Cookie": "access_token=abc", "Authorization": "Bearer xyz"}
    sanitized = sanitize_log_data(data)

    assert set(sanitized.values()) == {"***REDACTED***"}


def test_nested_dict_sanitization():
    data = {
        "session": {
            "user_id": "8d1c",
            "password": "secret123"
        }
    }
    sanitized = sanitize_log_data(data)

    assert sanitized["session"]["user_id"] == "8d1c"
    assert sanitized["session"]["password"] == "***REDACTED***"
    # Input is left untouched
    assert data["session"]["password"] == "secret123"


def test_non_sensitive_data_unchanged():
    data = {"user_id": "8d1c", "email": "test@example.com", "path": "/auth/login"}

    assert sanitize_log_data(data) == data
