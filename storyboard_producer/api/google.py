"""
Google Veo Provider
===================

Veo video generation through the Gemini API.

Features:
- Up to 3 reference images for character consistency (Veo 3.1)
- Native audio generation
- Long-running operations polled until ``done``
"""

import logging
from typing import Optional, List, Dict, Any

from .base import (
    BaseVideoProvider,
    VideoGenerationResult,
    GenerationRequest,
    GenerationStatus,
    ReferenceImage,
)
from .factory import register_provider

logger = logging.getLogger(__name__)


@register_provider("google")
class GoogleVeoProvider(BaseVideoProvider):
    """
    Google Veo video generation provider.

    Submits ``predictLongRunning`` jobs and polls the returned operation.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "veo-3.0-generate-001",
        reference_model: str = "veo-3.1-generate-preview",
        **kwargs,
    ):
        self._model = model
        self._reference_model = reference_model
        super().__init__(api_key=api_key, **kwargs)

    @property
    def provider_name(self) -> str:
        return "Google Veo"

    @property
    def supported_models(self) -> List[str]:
        return [
            "veo-3.0-generate-001",
            "veo-3.0-fast-generate-001",
            "veo-3.1-generate-preview",
            "veo-3.1-fast-generate-preview",
        ]

    @property
    def default_model(self) -> str:
        return self._model

    @property
    def reference_model(self) -> str:
        return self._reference_model

    def _get_default_base_url(self) -> str:
        return "https://generativelanguage.googleapis.com/v1beta"

    def _get_headers(self) -> Dict[str, str]:
        """The Gemini API takes the key in its own header, not as a bearer token."""
        return {
            "x-goog-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }

    def _get_download_headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key or ""}

    async def _submit(
        self,
        request: GenerationRequest,
        model: str,
        references: List[ReferenceImage],
    ) -> Dict[str, Any]:
        endpoint = f"{self.base_url}/models/{model}:predictLongRunning"
        payload = self._build_payload(request, references)

        logger.debug(
            f"Submitting Veo job: model={model} aspect={request.aspect_ratio} "
            f"references={len(references)}"
        )

        client = await self._get_client()
        response = await client.post(endpoint, json=payload)
        self._raise_for_status(response)
        return response.json()

    def _build_payload(
        self,
        request: GenerationRequest,
        references: List[ReferenceImage],
    ) -> Dict[str, Any]:
        """Build the Veo API request payload."""
        instance: Dict[str, Any] = {"prompt": request.prompt}

        if references:
            instance["referenceImages"] = [
                {
                    "image": {
                        "bytesBase64Encoded": ref.to_base64(),
                        "mimeType": ref.mime_type,
                    },
                    "referenceType": "asset",
                }
                for ref in references[: self.max_reference_images]
            ]

        parameters: Dict[str, Any] = {
            "aspectRatio": request.aspect_ratio,
            "resolution": request.resolution,
            "durationSeconds": request.duration,
            "sampleCount": request.sample_count,
            "generateAudio": request.with_audio,
        }
        if request.negative_prompt:
            parameters["negativePrompt"] = request.negative_prompt

        return {"instances": [instance], "parameters": parameters}

    async def _fetch_job(self, job_id: str) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.get(f"{self.base_url}/{job_id}")
        self._raise_for_status(response)
        return response.json()

    def _job_id(self, data: Dict[str, Any]) -> Optional[str]:
        """Operation name, e.g. ``models/<model>/operations/<id>``."""
        return data.get("name")

    def _job_status(self, data: Dict[str, Any]) -> GenerationStatus:
        if not data.get("done"):
            return GenerationStatus.PROCESSING
        if "error" in data:
            return GenerationStatus.FAILED
        return GenerationStatus.COMPLETED

    def _job_error(self, data: Dict[str, Any]) -> str:
        error = data.get("error") or {}
        return error.get("message", "Unknown error")

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: VideoGenerationResult,
    ) -> VideoGenerationResult:
        """Pull the first generated sample out of a finished operation."""
        response = data.get("response") or {}
        samples = (response.get("generateVideoResponse") or {}).get("generatedSamples") or []

        uri = None
        if samples:
            uri = (samples[0].get("video") or {}).get("uri")

        if uri:
            result.video_url = uri
            result.status = GenerationStatus.COMPLETED
        else:
            # Blocked prompts finish "done" with no samples
            filtered = (response.get("generateVideoResponse") or {}).get("raiMediaFilteredReasons")
            result.status = GenerationStatus.FAILED
            result.error_message = (
                f"No video was generated: {'; '.join(filtered)}" if filtered else "No video was generated"
            )

        return result
