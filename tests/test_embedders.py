"""Tests for the offline pixel embedder and the Gemini caption embedder."""

import io
from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np
import pytest
from PIL import Image

from lookalike.embedders import CaptionEmbedder, PixelStatsEmbedder
from lookalike.embedders.gemini_embedder import CAPTION_PROMPT, FALLBACK_CAPTION
from lookalike.errors import EmbeddingError


def png_bytes(color, size=(16, 16)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def embed_response(values):
    return SimpleNamespace(embeddings=[SimpleNamespace(values=values)])


class TestPixelStatsEmbedder:
    def test_dimension_and_unit_norm(self):
        vector = PixelStatsEmbedder(dim=768).embed_image(png_bytes((200, 10, 10)))
        assert vector.shape == (768,)
        assert np.linalg.norm(vector) == pytest.approx(1.0)
        assert np.all(vector >= 0)

    def test_deterministic(self):
        embedder = PixelStatsEmbedder(dim=64)
        data = png_bytes((12, 180, 40))
        np.testing.assert_array_equal(embedder.embed_image(data), embedder.embed_image(data))

    def test_similar_colours_score_higher(self):
        embedder = PixelStatsEmbedder(dim=128)
        red = embedder.embed_image(png_bytes((220, 20, 20)))
        dark_red = embedder.embed_image(png_bytes((200, 30, 30)))
        blue = embedder.embed_image(png_bytes((20, 20, 220)))
        assert float(red @ dark_red) > float(red @ blue)

    def test_undecodable_bytes(self):
        with pytest.raises(EmbeddingError):
            PixelStatsEmbedder(dim=32).embed_image(b"not an image")

    def test_embed_file_url(self, tmp_path):
        path = tmp_path / "shoe.png"
        path.write_bytes(png_bytes((0, 0, 0)))
        embedder = PixelStatsEmbedder(dim=32)
        np.testing.assert_allclose(embedder.embed_url(path.as_uri()), embedder.embed_image(path.read_bytes()))

    def test_missing_url_is_embedding_error(self, tmp_path):
        with pytest.raises(EmbeddingError):
            PixelStatsEmbedder(dim=32).embed_url((tmp_path / "missing.png").as_uri())


class TestCaptionEmbedder:
    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.models.generate_content.return_value = SimpleNamespace(text="  red leather running shoe  ")
        client.models.embed_content.return_value = embed_response([0.5] * 8)
        return client

    def test_captions_then_embeds(self, client):
        embedder = CaptionEmbedder(dim=8, client=client)
        vector = embedder.embed_image(b"jpeg-bytes", "image/jpeg")

        assert vector.tolist() == [0.5] * 8
        contents = client.models.generate_content.call_args.kwargs["contents"]
        assert contents[-1] == CAPTION_PROMPT
        client.models.embed_content.assert_called_once_with(model="text-embedding-004", contents="red leather running shoe")

    def test_blank_caption_falls_back(self, client):
        client.models.generate_content.return_value = SimpleNamespace(text="")
        CaptionEmbedder(dim=8, client=client).embed_image(b"jpeg-bytes")
        assert client.models.embed_content.call_args.kwargs["contents"] == FALLBACK_CAPTION

    def test_empty_embedding_is_an_error_not_an_empty_vector(self, client):
        client.models.embed_content.return_value = embed_response([])
        with pytest.raises(EmbeddingError):
            CaptionEmbedder(dim=8, client=client).embed_image(b"jpeg-bytes")

    def test_wrong_dimension_is_an_error(self, client):
        client.models.embed_content.return_value = embed_response([0.1] * 3)
        with pytest.raises(EmbeddingError):
            CaptionEmbedder(dim=8, client=client).embed_image(b"jpeg-bytes")

    def test_provider_exception_is_wrapped(self, client):
        client.models.generate_content.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(EmbeddingError, match="quota exceeded"):
            CaptionEmbedder(dim=8, client=client).embed_image(b"jpeg-bytes")

    def test_embed_url_downloads_image(self, client, tmp_path):
        path = tmp_path / "bag.png"
        path.write_bytes(b"png-bytes")
        CaptionEmbedder(dim=8, client=client).embed_url(path.as_uri())
        part = client.models.generate_content.call_args.kwargs["contents"][0]
        assert part.inline_data.data == b"png-bytes"
        assert part.inline_data.mime_type == "image/png"
