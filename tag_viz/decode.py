import cv2
import numpy as np


class DecodeFailure(RuntimeError):
    pass


def decode_frame(payload) -> np.ndarray:
    """Decode a compressed image payload (JPEG, PNG, ...) into a BGR buffer."""
    if payload is None or len(payload) == 0:
        raise DecodeFailure("empty image payload")

    buf = np.frombuffer(bytes(payload), dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        raise DecodeFailure(f"could not decode {len(buf)} byte payload")
    return img


def encode_frame(image: np.ndarray, quality: int = 90) -> bytes:
    ok, buf = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise RuntimeError("JPEG encoding failed")
    return buf.tobytes()
