from __future__ import annotations

from typing import Optional, Tuple, Union

from describe_media.config import DEFAULT_MODEL, DEFAULT_OLLAMA_URL, DEFAULT_TIMEOUT_SEC, DescribeConfig
from describe_media.errors import ModelUnavailableError
from describe_media.logging_utils import get_logger

# Reuse the low-level client for the HTTP calls
from apis.ollama import fetch_image_base64, generate as _generate_low

log = get_logger(__name__)


class OllamaClient:
    """Ask a local Ollama vision model to describe one image for one prompt."""

    def __init__(self, host: str = DEFAULT_OLLAMA_URL, model: str = DEFAULT_MODEL,
                 timeout: float = DEFAULT_TIMEOUT_SEC):
        self.host = host
        self.model = model
        self.timeout = timeout
        # Last downloaded image; the kinds of one item are requested back to back.
        self._image: Optional[Tuple[str, str]] = None

    @classmethod
    def from_config(cls, config: DescribeConfig) -> "OllamaClient":
        return cls(host=config.ollama_url, model=config.model, timeout=config.timeout)

    def describe(self, image_source_url: str, prompt: Union[str, bool, None]) -> str:
        """Return the model's trimmed answer, or "" when the prompt is disabled.

        Raises ModelUnavailableError when the endpoint gives no usable answer
        and ImageFetchError when the image itself cannot be downloaded.
        """
        if prompt is None or prompt is True or prompt is False:
            return ""
        prompt = prompt.strip()
        if not prompt:
            return ""

        image_b64 = self._image_base64(image_source_url)
        log.debug("ollama.generate POST", extra={
            "url": image_source_url, "model": self.model, "prompt_len": len(prompt)
        })
        data = _generate_low(prompt=prompt, image_b64=image_b64, host=self.host,
                             model=self.model, timeout=self.timeout)
        response = data.get("response")
        if not isinstance(response, str):
            raise ModelUnavailableError(
                f"No response from the language model for {image_source_url}: {data!r}"[:1000]
            )
        return response.strip()

    def _image_base64(self, url: str) -> str:
        if self._image is None or self._image[0] != url:
            self._image = None
            self._image = (url, fetch_image_base64(url, timeout=self.timeout))
        return self._image[1]
