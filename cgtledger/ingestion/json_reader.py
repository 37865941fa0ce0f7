"""JSON ledger reader: `{"assets": [...], "transactions": [...]}` into typed models."""

import json
import sys
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

from cgtledger.exceptions import InputError
from cgtledger.models.ledger import LedgerInput

STDIN = "-"


class JsonTransactionReader:
    """Reads a transaction ledger from a JSON file or stdin."""

    def read(self, source: Path | str = STDIN) -> LedgerInput:
        """Parse and validate a ledger file. `-` reads stdin."""
        label = str(source)
        if label == STDIN:
            text = sys.stdin.read()
            label = "<stdin>"
        else:
            path = Path(source)
            if not path.exists():
                raise InputError(label, "file not found")
            try:
                text = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as exc:
                raise InputError(label, f"not valid UTF-8: {exc.reason}") from exc
            except OSError as exc:
                raise InputError(label, f"cannot read file: {exc.strerror or exc}") from exc

        return self.parse(text, label)

    @staticmethod
    def parse(text: str, source: str = "<string>") -> LedgerInput:
        try:
            raw = json.loads(text, parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise InputError(source, f"invalid JSON: {exc}") from exc

        if isinstance(raw, list):
            raise InputError(source, "expected an object with 'assets' and 'transactions' keys")

        try:
            ledger = LedgerInput.model_validate(raw)
        except ValidationError as exc:
            raise InputError(source, _format_errors(exc)) from exc

        try:
            ledger.registry()
        except ValueError as exc:
            raise InputError(source, str(exc)) from exc
        return ledger


def _format_errors(exc: ValidationError) -> str:
    """First few validation errors as `path: message` pairs."""
    parts = []
    for error in exc.errors()[:5]:
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}")
    remaining = exc.error_count() - len(parts)
    if remaining > 0:
        parts.append(f"... and {remaining} more")
    return "; ".join(parts)
