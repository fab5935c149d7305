"""Baidu AI advanced general image classification client."""

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import httpx

from object_recognition.domain.objects import ApiResult
from object_recognition.domain.quota import ProviderConfig
from object_recognition.errors import TransportError
from object_recognition.services.providers import ProviderClient

TOKEN_URL = "https://aip.baidubce.com/oauth/2.0/token"
RECOGNIZE_URL = (
    "https://aip.baidubce.com/rest/2.0/image-classify/v2/advanced_general"
)
_TOKEN_SAFETY_MARGIN_SECONDS = 60
_DEFAULT_TOKEN_TTL_SECONDS = 2592000


@dataclass
class _AccessToken:
    value: str
    expires_at: datetime


@dataclass
class HttpxBaiduClient(ProviderClient):
    """Provider client for Baidu image classification.

    Credentials come from the provider's ``api_key`` and ``secret_key``
    params. Access tokens are cached per API key until shortly before
    they expire.
    """

    http_client: httpx.AsyncClient
    _tokens: dict[str, _AccessToken] = field(default_factory=dict, init=False)

    @classmethod
    def create(cls) -> "HttpxBaiduClient":
        """Create a Baidu client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient())

    async def recognize(self, image: bytes, provider: ProviderConfig) -> ApiResult:
        """Classify an image and return the top keyword."""
        token = await self._access_token(provider)
        response = await self.http_client.post(
            RECOGNIZE_URL,
            params={"access_token": token},
            data={"image": base64.b64encode(image).decode("utf-8")},
            timeout=10,
        )
        payload = _json_or_raise(response, provider.name)
        if "error_code" in payload:
            raise TransportError(
                f"{provider.name} error {payload.get('error_code')}: "
                f"{payload.get('error_msg', '')}"
            )
        results = payload.get("result")
        if not isinstance(results, list) or not results:
            raise TransportError(f"{provider.name} returned no result")
        top = results[0]
        keyword = str(top.get("keyword") or "").strip()
        if not keyword:
            raise TransportError(f"{provider.name} returned an empty keyword")
        root = str(top.get("root") or "")
        return ApiResult(
            name=keyword,
            description=f"分类: {root}" if root else "",
            confidence=float(top.get("score") or 0.0),
            provider=provider.name,
            raw={"root": root, "keyword": keyword},
        )

    async def _access_token(self, provider: ProviderConfig) -> str:
        api_key = provider.params.get("api_key", "")
        secret_key = provider.params.get("secret_key", "")
        if not api_key or not secret_key:
            raise TransportError(f"{provider.name} credentials are not configured")
        cached = self._tokens.get(api_key)
        if cached is not None and datetime.now(tz=UTC) < cached.expires_at:
            return cached.value

        response = await self.http_client.post(
            TOKEN_URL,
            data={
                "grant_type": "client_credentials",
                "client_id": api_key,
                "client_secret": secret_key,
            },
            timeout=10,
        )
        payload = _json_or_raise(response, provider.name)
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise TransportError(f"{provider.name} token request was rejected")
        expires_in = int(payload.get("expires_in") or _DEFAULT_TOKEN_TTL_SECONDS)
        self._tokens[api_key] = _AccessToken(
            value=token,
            expires_at=datetime.now(tz=UTC)
            + timedelta(seconds=expires_in - _TOKEN_SAFETY_MARGIN_SECONDS),
        )
        return token

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _json_or_raise(response: httpx.Response, provider_name: str) -> dict[str, object]:
    if not response.is_success:
        raise TransportError(
            f"{provider_name} responded with HTTP {response.status_code}",
            status_code=response.status_code,
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise TransportError(f"{provider_name} returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise TransportError(f"{provider_name} returned an unexpected payload")
    return payload
