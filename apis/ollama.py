import base64
from typing import Any, Dict, Optional

import requests
import urllib3

from describe_media.errors import ImageFetchError, ModelUnavailableError

# Assets are served by the local site, often with a self-signed certificate.
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


def fetch_image_base64(url: str, timeout: float = 60.0) -> str:
    """
    画像をダウンロードしてbase64文字列で返す

    Args:
        url (str): 画像のURL
        timeout (float): タイムアウト（秒）

    Returns:
        str: base64エンコードされた画像データ
    """
    try:
        response = requests.get(url, verify=False, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise ImageFetchError(f"Failed to download image {url}: {e}") from e
    return base64.b64encode(response.content).decode("ascii")


def generate(prompt: str, image_b64: str,
             host: str = "http://127.0.0.1:11434",
             model: str = "llava",
             timeout: float = 20 * 60) -> Dict[str, Any]:
    """
    Ollamaの /api/generate に画像とプロンプトを送り、JSONレスポンスを返す

    Args:
        prompt (str): プロンプト
        image_b64 (str): base64エンコードされた画像
        host (str): OllamaサーバーのURL
        model (str): モデル名
        timeout (float): タイムアウト（秒）

    Returns:
        Dict[str, Any]: デコードされたJSONオブジェクト

    Raises:
        ModelUnavailableError: 接続失敗、HTTPエラー、JSONでない/空のレスポンス
    """
    url = f"{host.rstrip('/')}/api/generate"
    body = {
        "model": model,
        "prompt": prompt,
        "images": [image_b64],
        "stream": False,
    }
    try:
        response = requests.post(url, json=body, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise ModelUnavailableError(f"No response from the language model at {url}: {e}") from e

    data: Optional[Any]
    try:
        data = response.json()
    except ValueError:
        data = None

    if not (200 <= response.status_code < 300):
        detail = data.get("error") if isinstance(data, dict) else response.text[:500]
        raise ModelUnavailableError(f"Language model returned HTTP {response.status_code}: {detail}")
    if not data or not isinstance(data, dict):
        raise ModelUnavailableError(f"Language model returned no usable JSON: {response.text[:500]!r}")
    return data
