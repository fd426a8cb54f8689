from __future__ import annotations

from pathlib import Path
from typing import List, Union
import logging

from coreutils.env import env_get
from models.grayscale_kernel import GrayscaleKernel, RoundingPolicy
from models.image import Image
from services.image_service import ImageService
from services.kernel_dispatch_service import KernelDispatchService, DispatchMode

logger = logging.getLogger(__name__)


class GrayscaleService:
    """
    Converts RGBA Images to grayscale with the fixed 0.299/0.587/0.114
    weighting, alpha preserved.
    *   Input Images are never modified; a new Image is returned.
    *   Uses environment variables for configuration.
    """

    def __init__(self,
                 rounding: Union[str, RoundingPolicy] = None,
                 dispatcher: KernelDispatchService = None,
                 mode: Union[str, DispatchMode] = None):
        """
        Args:
            rounding: narrowing policy (defaults to GRAYSCALE_ROUNDING)
            dispatcher: sweep runner (defaults to one built from env vars)
            mode: dispatch mode override (defaults to GRAYSCALE_DISPATCH_MODE);
                only used when no dispatcher is given
        """
        if dispatcher is not None and mode is not None:
            raise ValueError("Pass either a dispatcher or a mode, not both")
        self.kernel = GrayscaleKernel(
            RoundingPolicy.parse(rounding or env_get("GRAYSCALE_ROUNDING", RoundingPolicy.TRUNCATE.value))
        )
        self.dispatcher = dispatcher or KernelDispatchService(mode=mode)
        self.img_svc = ImageService()

        logger.info(f"GrayscaleService initialized: rounding={self.kernel.rounding.value}, "
                    f"mode={self.dispatcher.mode.value}, workers={self.dispatcher.workers}")

    # ─── Public API ────────────────────────────────────────────────
    def to_grayscale(self, img: Image) -> Image:
        """
        Return a new grayscale Image with the same dimensions as `img`.
        """
        result = self.dispatcher.sweep(self.kernel, img.pixels)
        if not result.fully_covered:
            raise RuntimeError(f"Sweep did not visit every pixel exactly once ({img.width}x{img.height})")

        new_path = (
            img.path.with_stem(img.path.stem + "_gray") if img.path else None
        )
        return self.img_svc.create_image(result.pixels, new_path)

    def convert_file(self, path: Union[str, Path], output_dir: Union[str, Path] = None) -> Path:
        img = self.img_svc.load(path)
        gray = self.to_grayscale(img)
        if output_dir is not None:
            gray.path = Path(output_dir) / gray.path.name
        self.img_svc.save(gray)
        logger.info(f"Converted {img.path} -> {gray.path}")
        return gray.path

    def convert_files(self, paths: List[Union[str, Path]], output_dir: Union[str, Path] = None) -> List[Path]:
        return [self.convert_file(p, output_dir) for p in paths]
