from __future__ import annotations

import os

XAI_API_KEY = "xai_api_key"
HF_API_KEY = "hf_api_key"
HF_CUSTOM_ENDPOINT = "hf_custom_endpoint"

# credential key -> environment variable used to seed it
ENV_VARS = {
    XAI_API_KEY: "XAI_API_KEY",
    HF_API_KEY: "HF_API_KEY",
    HF_CUSTOM_ENDPOINT: "HF_CUSTOM_ENDPOINT",
}


class CredentialStore:
    """Opaque key-value store for provider keys and optional endpoints.

    Values are passed through to provider clients untouched, apart from
    surrounding whitespace.
    """

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = {}
        for key, value in (values or {}).items():
            self.set(key, value)

    @classmethod
    def from_env(cls) -> CredentialStore:
        return cls({key: os.getenv(var, "") for key, var in ENV_VARS.items()})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str | None) -> None:
        cleaned = (value or "").strip()
        if cleaned:
            self._values[key] = cleaned
        else:
            self._values.pop(key, None)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def is_set(self, key: str) -> bool:
        return key in self._values
