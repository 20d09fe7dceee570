from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from describe_media.errors import CatalogError, StoreWriteError


def _auth(user: Optional[str], password: Optional[str]) -> Optional[Tuple[str, str]]:
    if user and password:
        return (user, password)
    return None


def list_media_page(base_url: str, page: int,
                    per_page: int = 100,
                    user: Optional[str] = None,
                    password: Optional[str] = None,
                    timeout: float = 60.0) -> Tuple[List[Dict[str, Any]], int]:
    """
    メディアライブラリの画像添付ファイルを1ページ取得する

    Args:
        base_url (str): サイトのURL (例: https://example.test)
        page (int): ページ番号 (1始まり)
        per_page (int): 1ページあたりの件数 (最大100)

    Returns:
        Tuple[List[Dict], int]: (添付ファイルのリスト, 総ページ数)
    """
    url = f"{base_url.rstrip('/')}/wp-json/wp/v2/media"
    params = {
        "media_type": "image",
        "per_page": per_page,
        "page": page,
        "context": "edit" if _auth(user, password) else "view",
    }
    try:
        response = requests.get(url, params=params, auth=_auth(user, password), timeout=timeout)
        response.raise_for_status()
        items = response.json()
    except requests.exceptions.RequestException as e:
        raise CatalogError(f"Failed to list media (page={page}): {e}") from e
    except ValueError as e:
        raise CatalogError(f"Media list (page={page}) is not JSON: {e}") from e
    if not isinstance(items, list):
        raise CatalogError(f"Unexpected media list payload (page={page}): {type(items).__name__}")
    total_pages = int(response.headers.get("X-WP-TotalPages", "1") or 1)
    return items, total_pages


def update_media(base_url: str, media_id: int, payload: Mapping[str, str],
                 user: Optional[str] = None,
                 password: Optional[str] = None,
                 timeout: float = 60.0) -> Dict[str, Any]:
    """
    添付ファイルのフィールド (title, caption, description, alt_text) を更新する

    Args:
        base_url (str): サイトのURL
        media_id (int): 添付ファイルID
        payload (Mapping[str, str]): 更新するフィールド

    Returns:
        Dict[str, Any]: 更新後の添付ファイル
    """
    url = f"{base_url.rstrip('/')}/wp-json/wp/v2/media/{media_id}"
    try:
        response = requests.post(url, json=dict(payload), auth=_auth(user, password), timeout=timeout)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        raise StoreWriteError(f"Failed to update media {media_id}: {e}") from e
    except ValueError as e:
        raise StoreWriteError(f"Update of media {media_id} returned non-JSON body: {e}") from e
