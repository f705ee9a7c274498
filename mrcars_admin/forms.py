# forms.py
"""Presence/format checks for the create and edit dialogs.

A dialog submission is validated in full before any backend call; the first
problem per field is kept so the template can show it next to the input.
"""
import ipaddress
import re
from datetime import date
from typing import Any, Dict, Iterable, Optional

from mrcars_admin.utils.parsing import parse_bool

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class Form:
    def __init__(self, data=None):
        self.data = data or {}
        self.errors: Dict[str, str] = {}
        self.cleaned: Dict[str, Any] = {}

    def _raw(self, name) -> str:
        v = self.data.get(name)
        return "" if v is None else str(v).strip()

    def _fail(self, name, message):
        self.errors.setdefault(name, message)

    def text(self, name, required=False, min_len=None, max_len=None, label=None) -> "Form":
        label = label or name.replace("_", " ").capitalize()
        v = self._raw(name)
        if required and not v:
            self._fail(name, f"{label} is required")
        elif v and min_len and len(v) < min_len:
            self._fail(name, f"{label} must be at least {min_len} characters")
        elif v and max_len and len(v) > max_len:
            self._fail(name, f"{label} must be at most {max_len} characters")
        self.cleaned[name] = v or None
        return self

    def email(self, name, required=True, label="Email") -> "Form":
        v = self._raw(name)
        if not v:
            if required:
                self._fail(name, f"{label} is required")
        elif not EMAIL_RE.match(v):
            self._fail(name, "Invalid email address")
        self.cleaned[name] = v.lower() or None
        return self

    def choice(self, name, choices: Iterable[str], default=None, label=None) -> "Form":
        label = label or name.replace("_", " ").capitalize()
        choices = tuple(choices)
        v = self._raw(name) or default
        if v not in choices:
            self._fail(name, f"{label} must be one of: {', '.join(choices)}")
        self.cleaned[name] = v
        return self

    def integer(self, name, minv=None, maxv=None, required=True, default=None, label=None) -> "Form":
        label = label or name.replace("_", " ").capitalize()
        raw = self._raw(name)
        if not raw:
            if required and default is None:
                self._fail(name, f"{label} is required")
            self.cleaned[name] = default
            return self
        try:
            n = int(raw)
        except ValueError:
            self._fail(name, f"{label} must be a whole number")
            self.cleaned[name] = default
            return self
        if (minv is not None and n < minv) or (maxv is not None and n > maxv):
            self._fail(name, f"{label} must be between {minv} and {maxv}")
        self.cleaned[name] = n
        return self

    def number(self, name, minv=None, required=False, default=None, label=None) -> "Form":
        label = label or name.replace("_", " ").capitalize()
        raw = self._raw(name)
        if not raw:
            if required:
                self._fail(name, f"{label} is required")
            self.cleaned[name] = default
            return self
        try:
            n = float(raw)
        except ValueError:
            self._fail(name, f"{label} must be a number")
            self.cleaned[name] = default
            return self
        if minv is not None and n < minv:
            self._fail(name, f"{label} must be at least {minv}")
        self.cleaned[name] = n
        return self

    def boolean(self, name, default=False) -> "Form":
        self.cleaned[name] = parse_bool(self.data.get(name), default)
        return self

    def ip_address(self, name, label="IP address") -> "Form":
        v = self._raw(name)
        if not v:
            self._fail(name, f"{label} is required")
        else:
            try:
                ipaddress.ip_address(v)
            except ValueError:
                self._fail(name, f"{v} is not a valid IP address")
        self.cleaned[name] = v or None
        return self

    def date(self, name, required=False, label=None) -> "Form":
        label = label or name.replace("_", " ").capitalize()
        v = self._raw(name)
        if not v:
            if required:
                self._fail(name, f"{label} is required")
            self.cleaned[name] = None
            return self
        try:
            date.fromisoformat(v[:10])
        except ValueError:
            self._fail(name, f"{label} must be a date (YYYY-MM-DD)")
        self.cleaned[name] = v
        return self

    def validate(self) -> Dict[str, Any]:
        if self.errors:
            raise ValidationError(self.errors)
        return dict(self.cleaned)


def require_reason(reason: Optional[str], label="Reason") -> str:
    """Rejections and blocks must say why."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"reason": f"{label} is required"})
    return reason
