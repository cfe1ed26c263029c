"""Framing of the answer stream sent to chat clients.

Each increment is one line ``<code>:<json string>\\n``. Code ``0`` carries
answer text, code ``3`` reports an error that ended the stream.
"""

import json

TEXT_FRAME_PREFIX = "0:"
ERROR_FRAME_PREFIX = "3:"


def encode_text_frame(text: str) -> str:
    return f"{TEXT_FRAME_PREFIX}{json.dumps(text)}\n"


def encode_error_frame(message: str) -> str:
    return f"{ERROR_FRAME_PREFIX}{json.dumps(message)}\n"
