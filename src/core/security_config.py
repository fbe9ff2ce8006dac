"""Security configuration constants for log sanitization.

This module centralizes the keys that must never reach log output in clear
text. Résumés are dense with personal data, so the list covers credentials
as well as the contact details a parsed document carries.
"""

# Comprehensive list of sensitive keys for sanitization
# These keys will be automatically redacted from logs to prevent PII leakage
SENSITIVE_KEYS: set[str] = {
    # Provider credentials
    "password",
    "secret",
    "token",
    "authorization",
    "api_key",
    "apikey",
    "bearer",
    "x-api-key",
    "cookie",
    # Personal Identifiable Information
    "email",
    "phone",
    "ssn",
    "social_security_number",
    "address",
    "full_name",
    "candidate_name",
    "date_of_birth",
    # Raw document content
    "resume_text",
    "raw_text",
    "buffer",
}


def is_sensitive_key(key: str) -> bool:
    """Check if a key should be considered sensitive and redacted.

    Args:
        key: The key name to check

    Returns:
        True if the key should be redacted, False otherwise
    """
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
