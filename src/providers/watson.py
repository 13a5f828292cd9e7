from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict

from ibm_cloud_sdk_core.authenticators import IAMAuthenticator
from ibm_watson import AssistantV1, TextToSpeechV1, ToneAnalyzerV3, VisualRecognitionV3

from tjbot.config import RuntimeConfig

# The SDK clients are blocking (requests); every call is pushed onto a worker
# thread so the event loop keeps draining transcripts and timers.


class WatsonToneClient:
    def __init__(self, service: ToneAnalyzerV3):
        self._service = service

    def _tone(self, text: str) -> Dict[str, Any]:
        response = self._service.tone(tone_input={"text": text}, content_type="application/json", sentences=False)
        return response.get_result()

    async def tone(self, text: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self._tone, text)


class WatsonVisionClient:
    def __init__(self, service: VisualRecognitionV3, classifier_id: str, threshold: float = 0.0):
        self._service = service
        self._classifier_id = classifier_id
        self._threshold = threshold

    def _classify(self, image_path: Path) -> Dict[str, Any]:
        with image_path.open("rb") as images_file:
            response = self._service.classify(
                images_file=images_file,
                images_filename=image_path.name,
                threshold=self._threshold,
                classifier_ids=[self._classifier_id],
            )
        return response.get_result()

    async def classify(self, image_path: Path) -> Dict[str, Any]:
        return await asyncio.to_thread(self._classify, Path(image_path))


class WatsonDialogClient:
    def __init__(self, service: AssistantV1, workspace_id: str):
        self._service = service
        self._workspace_id = workspace_id

    def _message(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        response = self._service.message(
            workspace_id=self._workspace_id,
            input={"text": text},
            context=context,
        )
        return response.get_result()

    async def message(self, text: str, context: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._message, text, context)


class WatsonSpeechClient:
    def __init__(self, service: TextToSpeechV1, voice: str, accept: str = "audio/wav"):
        self._service = service
        self._voice = voice
        self._accept = accept

    def _synthesize(self, text: str) -> bytes:
        response = self._service.synthesize(text, voice=self._voice, accept=self._accept)
        return response.get_result().content

    async def synthesize(self, text: str) -> bytes:
        return await asyncio.to_thread(self._synthesize, text)


def _authenticated(service_cls, api_key: str, url: str, **kwargs):
    service = service_cls(authenticator=IAMAuthenticator(api_key), **kwargs)
    service.set_service_url(url)
    return service


def build_tone_client(config: RuntimeConfig, api_key: str, url: str) -> WatsonToneClient:
    return WatsonToneClient(_authenticated(ToneAnalyzerV3, api_key, url, version=config.tone.version))


def build_vision_client(config: RuntimeConfig, api_key: str, url: str) -> WatsonVisionClient:
    service = _authenticated(VisualRecognitionV3, api_key, url, version=config.vision.version)
    return WatsonVisionClient(service, config.vision.classifier_id, config.vision.threshold)


def build_dialog_client(config: RuntimeConfig, api_key: str, url: str) -> WatsonDialogClient:
    service = _authenticated(AssistantV1, api_key, url, version=config.dialog.version)
    return WatsonDialogClient(service, config.dialog.workspace_id)


def build_speech_client(config: RuntimeConfig, api_key: str, url: str) -> WatsonSpeechClient:
    return WatsonSpeechClient(_authenticated(TextToSpeechV1, api_key, url), config.tts.voice, config.tts.accept)
