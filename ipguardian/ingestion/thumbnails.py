from pathlib import Path

from PIL import Image, ImageOps

from ipguardian.ingestion.exceptions import ThumbnailError
from ipguardian.ingestion.models import DerivedArtifact
from ipguardian.ingestion.staging import StagingArea


class ThumbnailDeriver:
    """Renders a fixed-size, cover-fit JPEG thumbnail for image uploads."""

    def __init__(
        self,
        staging: StagingArea,
        width: int = 300,
        height: int = 300,
        quality: int = 80,
    ) -> None:
        self._staging = staging
        self._size = (width, height)
        self._quality = quality

    def derive(self, source: Path) -> DerivedArtifact:
        """Write a thumbnail next to the staged upload.

        Raises:
            ThumbnailError: if the image cannot be decoded or re-encoded. No
                partial thumbnail file is left behind.
        """
        target = self._staging.scratch_path("thumb", ".jpg")
        try:
            with Image.open(source) as image:
                oriented = ImageOps.exif_transpose(image)
                if oriented.mode not in ("RGB", "L"):
                    oriented = oriented.convert("RGB")
                thumbnail = ImageOps.fit(
                    oriented,
                    self._size,
                    method=Image.Resampling.LANCZOS,
                    centering=(0.5, 0.5),
                )
                thumbnail.save(target, format="JPEG", quality=self._quality)
        except Exception as exc:  # noqa: BLE001
            self._staging.discard([target])
            raise ThumbnailError(f"Failed to generate thumbnail: {exc}") from exc
        return DerivedArtifact(path=target, width=self._size[0], height=self._size[1])
