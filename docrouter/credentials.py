"""AI credential loading and persistence

The credential blob has been written in several shapes over time:

* a plain JSON object ``{"apiKey": ..., "model": ...}``
* the same object base64-encoded
* either of the above with ``apiKey`` itself base64-encoded

Loading tries each decoder in turn and degrades to "no credential" on any
failure, so routing can always continue with the rules tier.
"""

import base64
import binascii
import json
from pathlib import Path
from typing import Callable, List, Optional

from docrouter.errors import StorageError
from docrouter.logging_setup import get_logger
from docrouter.models import AIConfiguration, DEFAULT_MODEL

logger = get_logger(__name__)

# plain keys look like "sk-ant-..." or "sk-...", their base64 form starts with "c2st"
PLAIN_KEY_PREFIX = "sk-"
ENCODED_KEY_PREFIX = base64.b64encode(PLAIN_KEY_PREFIX.encode()).decode()[:4]


class CredentialStore:
    """Single-blob persistence for the AI configuration"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        """Raw blob or None; unreadable files count as missing"""
        if not self.path.exists():
            return None
        try:
            blob = self.path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable AI configuration at {self.path}: {e}")
            return None
        return blob or None

    def save(self, config: AIConfiguration) -> None:
        """Write ``config`` in the current encoding"""
        payload = {"model": config.model}
        if config.api_key:
            payload["apiKey"] = base64.b64encode(config.api_key.encode("utf-8")).decode("ascii")
        blob = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(blob, encoding="utf-8")
            try:
                self.path.chmod(0o600)
            except OSError as e:
                logger.debug(f"Could not restrict permissions on {self.path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to save AI configuration to {self.path}", original_error=e)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


def _decode_raw_json(blob: str) -> Optional[dict]:
    if not blob.startswith("{"):
        return None
    return json.loads(blob)


def _decode_base64_json(blob: str) -> Optional[dict]:
    if blob.startswith("{"):
        return None
    decoded = base64.b64decode(blob, validate=True).decode("utf-8")
    return json.loads(decoded)


BLOB_DECODERS: List[Callable[[str], Optional[dict]]] = [
    _decode_raw_json,
    _decode_base64_json,
]


def decode_blob(blob: str) -> Optional[dict]:
    """Run the decoder chain; first decoder yielding a dict wins"""
    for decoder in BLOB_DECODERS:
        try:
            data = decoder(blob)
        except (ValueError, binascii.Error, UnicodeDecodeError) as e:
            logger.debug(f"{decoder.__name__} could not decode AI configuration: {e}")
            continue
        if isinstance(data, dict):
            return data
    return None


def decode_api_key(value) -> Optional[str]:
    """Unwrap a base64-encoded key, pass plain keys through"""
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    if value.startswith(ENCODED_KEY_PREFIX):
        try:
            decoded = base64.b64decode(value, validate=True).decode("utf-8").strip()
        except (ValueError, binascii.Error, UnicodeDecodeError):
            return value
        if decoded.startswith(PLAIN_KEY_PREFIX):
            return decoded
    return value


class CredentialLoader:
    """Resolves the locally configured AI credential"""

    def __init__(self, store: CredentialStore):
        self.store = store

    def load(self) -> AIConfiguration:
        try:
            blob = self.store.load()
        except Exception as e:
            logger.warning(f"AI configuration store failed: {e}")
            blob = None

        if not blob:
            return AIConfiguration()

        data = decode_blob(blob)
        if data is None:
            logger.warning("AI configuration could not be decoded, continuing without API key")
            return AIConfiguration()

        model = data.get("model")
        config = AIConfiguration(
            api_key=decode_api_key(data.get("apiKey")),
            model=model if isinstance(model, str) and model else DEFAULT_MODEL,
        )
        logger.info(
            f"AI config loaded: {'API key configured' if config.has_key else 'No API key'}, "
            f"Model: {config.model}"
        )
        return config
