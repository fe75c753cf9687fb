"""UTF-8 decoder for plain-text and Markdown files."""

from __future__ import annotations

from tenderdraft.interfaces.text_extractor import ITextExtractor


class PlainTextExtractor(ITextExtractor):
    """Decodes bytes as UTF-8, replacing undecodable sequences."""

    async def extract(self, data: bytes) -> str:
        return self.decode(data)

    @staticmethod
    def decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    def supported_types(self) -> frozenset[str]:
        return frozenset({"txt", "md"})

    def get_provider_name(self) -> str:
        return "utf-8"
