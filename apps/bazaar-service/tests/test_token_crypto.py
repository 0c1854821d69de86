from bazaar.utils import token_crypto


def test_generate_and_parse_roundtrip():
    tid, secret, full = token_crypto.generate_token()
    assert tid and secret and full
    assert full.startswith(token_crypto.TOKEN_PREFIX)
    parsed = token_crypto.parse_token(full)
    assert parsed is not None
    assert parsed.token_id == tid
    assert parsed.secret == secret


def test_parse_keeps_underscores_in_secret():
    parsed = token_crypto.parse_token("tb_at_abc123_sec_ret_value")
    assert parsed is not None
    assert parsed.token_id == "abc123"
    assert parsed.secret == "sec_ret_value"


def test_parse_rejects_malformed_tokens():
    assert token_crypto.parse_token("") is None
    assert token_crypto.parse_token("hs_pat_abc_def") is None
    assert token_crypto.parse_token("tb_at_") is None
    assert token_crypto.parse_token("tb_at__secret") is None
    assert token_crypto.parse_token("tb_at_abc123_") is None


def test_hash_and_verify_argon2():
    secret = "s3cr3t-test-value"
    enc = token_crypto.hash_secret(secret)
    assert enc.startswith("$argon2id$")
    assert token_crypto.verify_secret(secret, enc)
    assert not token_crypto.verify_secret("wrong-secret", enc)


def test_verify_password_handles_garbage_hash():
    assert not token_crypto.verify_password("password123", "not-a-hash")
    assert not token_crypto.verify_password("", token_crypto.hash_password("password123"))
