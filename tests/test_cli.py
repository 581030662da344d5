"""
Tests for the storefront-crypt command line tool.
"""

import io
import json
import os
import re
import tempfile
from pathlib import Path

import pytest

from storefront_crypt.cli import EXIT_CONFIG_ERROR, EXIT_INPUT_ERROR, EXIT_OK, main
from storefront_crypt.orders import FieldKind, classify

SECRET = "5a" * 32


def _run(argv: list[str], stdin_text: str = "") -> tuple[int, str]:
    stdout = io.StringIO()
    status = main(argv, stdin=io.StringIO(stdin_text), stdout=stdout)
    return status, stdout.getvalue()


class TestCli:
    """Tests for the CLI entry point."""

    @pytest.fixture(autouse=True)
    def configured_secret(self, clean_config: None) -> None:
        """Run every CLI test with a known secret; clean_config restores the environment."""
        os.environ["ENCRYPTION_KEY"] = SECRET

    def test_generate_key(self) -> None:
        status, output = _run(["generate-key"])

        assert status == EXIT_OK
        assert re.fullmatch(r"[0-9a-f]{128}\n", output)

    def test_generate_key_custom_length(self) -> None:
        status, output = _run(["generate-key", "--bytes", "32"])

        assert status == EXIT_OK
        assert len(output.strip()) == 64

    def test_generate_key_too_short(self) -> None:
        status, _ = _run(["generate-key", "--bytes", "8"])
        assert status == EXIT_INPUT_ERROR

    def test_encrypt_then_decode(self, sample_order: dict) -> None:
        status, encrypted_output = _run(["encrypt-order"], json.dumps(sample_order))
        assert status == EXIT_OK

        stored = json.loads(encrypted_output)
        assert classify(stored["shippingAddress"]).kind is FieldKind.ENVELOPE
        assert stored["coOrderId"] == sample_order["coOrderId"]

        status, decoded_output = _run(["decode-order"], encrypted_output)
        assert status == EXIT_OK
        assert json.loads(decoded_output) == sample_order

    def test_decode_order_list_from_file(self) -> None:
        records = [
            {"coOrderId": "A", "billingAddress": '{"firstName":"Jane"}'},
            {"coOrderId": "B", "orderItems": "not json"},
        ]
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump(records, f)
            path = f.name

        try:
            status, output = _run(["decode-order", path])
        finally:
            Path(path).unlink()

        assert status == EXIT_OK
        assert json.loads(output) == [
            {"coOrderId": "A", "billingAddress": {"firstName": "Jane"}},
            {"coOrderId": "B", "orderItems": "not json"},
        ]

    def test_invalid_input_json(self) -> None:
        status, _ = _run(["decode-order"], "{not json")
        assert status == EXIT_INPUT_ERROR

    def test_missing_input_file(self) -> None:
        status, _ = _run(["decode-order", "/nonexistent/order.json"])
        assert status == EXIT_INPUT_ERROR

    def test_decode_rejects_scalars(self) -> None:
        status, _ = _run(["decode-order"], "42")
        assert status == EXIT_INPUT_ERROR

    def test_encrypt_rejects_lists(self) -> None:
        status, _ = _run(["encrypt-order"], "[]")
        assert status == EXIT_INPUT_ERROR

    def test_inspect_legacy_field(self) -> None:
        status, output = _run(["inspect-field", '{"firstName":"Jane"}'])

        assert status == EXIT_OK
        assert "kind: legacy_plain" in output
        assert "parsed type: dict" in output

    def test_inspect_opaque_field(self) -> None:
        status, output = _run(["inspect-field", "not json at all"])

        assert status == EXIT_OK
        assert output == "kind: opaque\n"

    def test_inspect_envelope_field(self) -> None:
        _, encrypted_output = _run(["encrypt-order"], json.dumps({"orderItems": [{"id": "p"}]}))
        envelope = json.loads(encrypted_output)["orderItems"]

        status, output = _run(["inspect-field", envelope])

        assert status == EXIT_OK
        assert "kind: envelope" in output
        assert "decrypts: yes" in output
        assert "decrypted type: list" in output
        # Plaintext is never printed
        assert '"id"' not in output

    def test_inspect_envelope_with_other_key(self) -> None:
        _, encrypted_output = _run(["encrypt-order"], json.dumps({"orderItems": [1]}))
        envelope = json.loads(encrypted_output)["orderItems"]

        os.environ["ENCRYPTION_KEY"] = "6b" * 32
        status, output = _run(["inspect-field", envelope])

        assert status == EXIT_OK
        assert "decrypts: no" in output

    def test_missing_config_file(self) -> None:
        status, _ = _run(["--config", "/nonexistent/config.yaml", "generate-key"])
        assert status == EXIT_CONFIG_ERROR

    def test_malformed_secret(self) -> None:
        os.environ["ENCRYPTION_KEY"] = "not-hex"

        status, _ = _run(["decode-order"], "{}")

        assert status == EXIT_CONFIG_ERROR

    def test_no_secret_and_no_fallback(self) -> None:
        del os.environ["ENCRYPTION_KEY"]
        os.environ["STOREFRONT_ALLOW_EPHEMERAL_KEY"] = "false"

        status, _ = _run(["encrypt-order"], "{}")

        assert status == EXIT_CONFIG_ERROR

    def test_secrets_file(self) -> None:
        del os.environ["ENCRYPTION_KEY"]
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("encryption:\n  key: '" + SECRET + "'\n  allow_ephemeral_key: false\n")
            path = f.name

        try:
            _, encrypted_output = _run(["--secrets", path, "encrypt-order"], json.dumps({"orderItems": [1]}))
            os.environ["ENCRYPTION_KEY"] = SECRET
            _, output = _run(["inspect-field", json.loads(encrypted_output)["orderItems"]])
        finally:
            Path(path).unlink()

        assert "decrypts: yes" in output

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            main([])
