"""Azure AI Translator (v3) provider."""

from infrastructure.operations import OperationResult
from modules.localization.providers.base import (
    DetectedLanguage,
    HttpTranslationProvider,
    ProviderTranslation,
    language_list,
    normalize_confidence,
    provider_operation,
)

AZURE_CONFIDENCE = 0.8
API_VERSION = "3.0"


class AzureTranslatorProvider(HttpTranslationProvider):
    name = "azure"

    def __init__(self, *args, region: str = "global", **kwargs):
        super().__init__(*args, **kwargs)
        self.region = region

    @property
    def headers(self) -> dict:
        return {
            "Ocp-Apim-Subscription-Key": self.api_key,
            "Ocp-Apim-Subscription-Region": self.region,
            "Content-Type": "application/json",
        }

    @provider_operation
    async def translate(self, text: str, source: str, target: str) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        payload = await self._post(
            f"{self.base_url}/translate",
            params={"api-version": API_VERSION, "from": source.lower(), "to": target.lower()},
            headers=self.headers,
            json=[{"text": text}],
        )
        return OperationResult.success(
            data=ProviderTranslation(
                translated_text=payload[0]["translations"][0]["text"],
                confidence=AZURE_CONFIDENCE,
                provider=self.name,
            )
        )

    @provider_operation
    async def detect(self, text: str) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        payload = await self._post(
            f"{self.base_url}/detect",
            params={"api-version": API_VERSION},
            headers=self.headers,
            json=[{"text": text}],
        )
        return OperationResult.success(
            data=DetectedLanguage(
                language=payload[0]["language"].split("-")[0].upper(),
                confidence=normalize_confidence(payload[0].get("score")),
                provider=self.name,
            )
        )

    @provider_operation
    async def supported_languages(self) -> OperationResult:
        payload = await self._get(
            f"{self.base_url}/languages",
            params={"api-version": API_VERSION, "scope": "translation"},
        )
        return OperationResult.success(data=language_list(list(payload["translation"].keys())))
