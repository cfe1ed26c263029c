import codecs
import json

from shared.errors import UpstreamFailureError
from shared.helper.HelperStream import ERROR_FRAME_PREFIX, TEXT_FRAME_PREFIX


class StreamFrameDecoder:
    """Incrementally turns raw answer-stream bytes into text increments.

    Transport chunks may split UTF-8 characters and frame lines anywhere; both
    are buffered until complete. ``0:`` frames yield their JSON string payload,
    a ``3:`` frame raises. Lines without a known prefix are passed through as
    plain text.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one transport chunk and return the increments it completed.

        Raises:
            UpstreamFailureError: If an error frame was received.
        """
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [text for text in (self._decode_line(line, complete=True) for line in lines) if text]

    def flush(self) -> list[str]:
        """Return whatever is left once the stream has ended.

        Raises:
            UpstreamFailureError: If the trailing line is an error frame.
        """
        rest = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        text = self._decode_line(rest, complete=False) if rest else ""
        return [text] if text else []

    @staticmethod
    def _decode_line(line: str, complete: bool) -> str:
        if line.startswith(TEXT_FRAME_PREFIX):
            payload = line[len(TEXT_FRAME_PREFIX):]
            try:
                value = json.loads(payload)
            except json.JSONDecodeError:
                return payload
            return value if isinstance(value, str) else str(value)
        if line.startswith(ERROR_FRAME_PREFIX):
            payload = line[len(ERROR_FRAME_PREFIX):]
            try:
                message = json.loads(payload)
            except json.JSONDecodeError:
                message = payload
            raise UpstreamFailureError(f"Answer generation failed: {message}")
        # unframed text keeps its line break
        return line + "\n" if complete else line
