"""Google Cloud Translation (v2, API key) provider."""

from infrastructure.operations import OperationResult
from modules.localization.providers.base import (
    DetectedLanguage,
    HttpTranslationProvider,
    ProviderTranslation,
    language_list,
    normalize_confidence,
    provider_operation,
)

# v2 does not score translations
GOOGLE_CONFIDENCE = 0.9


class GoogleTranslateProvider(HttpTranslationProvider):
    name = "google"

    @provider_operation
    async def translate(self, text: str, source: str, target: str) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        payload = await self._post(
            self.base_url,
            params={"key": self.api_key},
            json={
                "q": text,
                "source": source.lower(),
                "target": target.lower(),
                "format": "text",
            },
        )
        translated = payload["data"]["translations"][0]["translatedText"]
        return OperationResult.success(
            data=ProviderTranslation(
                translated_text=translated,
                confidence=GOOGLE_CONFIDENCE,
                provider=self.name,
            )
        )

    @provider_operation
    async def detect(self, text: str) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        payload = await self._post(
            f"{self.base_url}/detect", params={"key": self.api_key}, json={"q": text}
        )
        detection = payload["data"]["detections"][0][0]
        return OperationResult.success(
            data=DetectedLanguage(
                language=detection["language"].split("-")[0].upper(),
                confidence=normalize_confidence(detection.get("confidence")),
                provider=self.name,
            )
        )

    @provider_operation
    async def supported_languages(self) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        payload = await self._get(f"{self.base_url}/languages", params={"key": self.api_key})
        codes = [entry["language"] for entry in payload["data"]["languages"]]
        return OperationResult.success(data=language_list(codes))
