"""DeepL API (v2) provider."""

from infrastructure.operations import OperationResult
from modules.localization.providers.base import (
    DetectedLanguage,
    HttpTranslationProvider,
    ProviderTranslation,
    language_list,
    provider_operation,
)

DEEPL_CONFIDENCE = 0.95


class DeepLProvider(HttpTranslationProvider):
    name = "deepl"

    @property
    def headers(self) -> dict:
        return {"Authorization": f"DeepL-Auth-Key {self.api_key}"}

    async def _translate_raw(self, text: str, source: str | None, target: str) -> dict:
        data = {
            "text": text,
            "target_lang": target.upper(),
            "preserve_formatting": "1",
        }
        if source:
            data["source_lang"] = source.upper()
        payload = await self._post(f"{self.base_url}/translate", headers=self.headers, data=data)
        return payload["translations"][0]

    @provider_operation
    async def translate(self, text: str, source: str, target: str) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        translation = await self._translate_raw(text, source, target)
        return OperationResult.success(
            data=ProviderTranslation(
                translated_text=translation["text"],
                confidence=DEEPL_CONFIDENCE,
                provider=self.name,
            )
        )

    @provider_operation
    async def detect(self, text: str) -> OperationResult:
        """DeepL reports the detected source language of a translation."""
        if not self.is_configured:
            return self._missing_credentials()
        translation = await self._translate_raw(text, None, "EN")
        return OperationResult.success(
            data=DetectedLanguage(
                language=translation["detected_source_language"].upper(),
                confidence=DEEPL_CONFIDENCE,
                provider=self.name,
            )
        )

    @provider_operation
    async def supported_languages(self) -> OperationResult:
        if not self.is_configured:
            return self._missing_credentials()
        payload = await self._get(
            f"{self.base_url}/languages", headers=self.headers, params={"type": "target"}
        )
        return OperationResult.success(data=language_list([entry["language"] for entry in payload]))
