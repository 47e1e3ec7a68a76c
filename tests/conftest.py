import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["STORE_BACKEND"] = "memory"
os.environ["ENABLE_LOCAL_PROVIDERS"] = "1"
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")
# optional backends stay unconfigured so their error path is exercised offline
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["STABILITY_API_KEY"] = ""


def encode_image(w=4, h=4, color=(128, 64, 32), fmt="PNG") -> bytes:
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :] = color
    img = Image.fromarray(arr)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def make_image():
    return encode_image


@pytest.fixture()
def client():
    # lazy import after env configured
    from src.main import create_app

    with TestClient(create_app()) as c:
        yield c
