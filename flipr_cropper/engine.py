"""
Crop session engine.

A ``CropSession`` owns one source image and its viewport state from file
selection until confirm or cancel:

    session = CropSession(aspect_ratio=450 / 350)
    session.begin_session(data)            # decode, DecodeError on bad input
    session.update_viewport(1.5, (40, 0))  # any number of times
    output = session.confirm_crop(450, 350, "JPEG", 0.9)

Viewport updates are pure and synchronous.  Rendering may instead be
submitted to an executor with ``submit_crop``; at most one render is in
flight per session, and cancelling the session makes its result
unconsumable.
"""

import logging
from concurrent.futures import Executor, Future

from flipr_cropper.config import (
    DEFAULT_ASPECT_RATIO, DEFAULT_OUTPUT_H, DEFAULT_OUTPUT_W, OUTPUT_FORMAT_DEFAULT,
    QUALITY_DEFAULT, RESAMPLE_DEFAULT, ZOOM_MAX, ZOOM_MIN,
)
from flipr_cropper.exceptions import (
    CropNotReadyError, RenderError, SessionCancelledError,
)
from flipr_cropper.image_io import decode_image
from flipr_cropper.models import (
    CropRegion, OutputImage, SourceImage, ViewportState,
    check_aspect, clamp_region, clamp_zoom, region_for_viewport, restrict_pan,
)
from flipr_cropper.worker import render_crop

logger = logging.getLogger(__name__)

_IDLE = "idle"      # never started
_ACTIVE = "active"  # source decoded
_CLOSED = "closed"  # cancelled, confirmed or failed


class PendingCrop:
    """Handle for a render submitted with ``CropSession.submit_crop``."""

    def __init__(self, session: "CropSession", future: Future, generation: int):
        self._session = session
        self._future = future
        self._generation = generation

    def done(self) -> bool:
        return self._future.done()

    @property
    def cancelled(self) -> bool:
        """True once the owning session was cancelled or restarted."""
        return self._session._generation != self._generation

    def result(self, timeout: float | None = None) -> OutputImage:
        """Wait for the render and return its output.

        Raises ``SessionCancelledError`` if the session was cancelled while
        the render was in flight, and ``RenderError`` if rendering failed.
        """
        try:
            output = self._future.result(timeout)
        except RenderError as e:
            if self.cancelled:
                raise SessionCancelledError("crop session was cancelled before the render completed") from e
            self._session._finish(self._generation, failed=True)
            raise
        if self.cancelled:
            logger.debug("Discarding render result for cancelled session")
            raise SessionCancelledError("crop session was cancelled before the render completed")
        self._session._finish(self._generation)
        return output


class CropSession:
    """Fixed-aspect crop session over a single source image."""

    def __init__(
        self,
        aspect_ratio: float = DEFAULT_ASPECT_RATIO,
        min_zoom: float = ZOOM_MIN,
        max_zoom: float = ZOOM_MAX,
        output_width: int = DEFAULT_OUTPUT_W,
        output_height: int = DEFAULT_OUTPUT_H,
        format: str = OUTPUT_FORMAT_DEFAULT,
        quality: float = QUALITY_DEFAULT,
        resample: str = RESAMPLE_DEFAULT,
    ):
        if not aspect_ratio or aspect_ratio <= 0:
            raise ValueError(f"aspect_ratio must be positive, got {aspect_ratio!r}")
        if min_zoom <= 0 or max_zoom < min_zoom:
            raise ValueError(f"invalid zoom range [{min_zoom}, {max_zoom}]")
        self.aspect_ratio = float(aspect_ratio)
        self.min_zoom = float(min_zoom)
        self.max_zoom = float(max_zoom)
        self.output_width = output_width
        self.output_height = output_height
        self.format = format
        self.quality = quality
        self.resample = resample

        self._state = _IDLE
        self._source: SourceImage | None = None
        self._viewport = ViewportState(zoom=self.min_zoom)
        self._pending: PendingCrop | None = None
        self._generation = 0

    @classmethod
    def from_preset(cls, preset: dict, **kwargs) -> "CropSession":
        """Build a session from a preset dict (see ``presets.load_presets``)."""
        return cls(
            aspect_ratio=preset["ratio_w"] / preset["ratio_h"],
            output_width=preset["output_w"],
            output_height=preset["output_h"],
            format=preset["format"],
            quality=preset["quality"],
            **kwargs,
        )

    # --- State ---

    @property
    def source(self) -> SourceImage | None:
        return self._source

    @property
    def viewport(self) -> ViewportState:
        return self._viewport

    @property
    def region(self) -> CropRegion | None:
        return self._viewport.region

    @property
    def is_active(self) -> bool:
        return self._state == _ACTIVE

    @property
    def has_pending_render(self) -> bool:
        return self._pending is not None and not self._pending.done()

    # --- Operations ---

    def begin_session(self, source_image_bytes: bytes) -> SourceImage:
        """Decode *source_image_bytes* and start a new session.

        Any previous session is discarded first.  Raises ``DecodeError``
        if the buffer is not a supported image.
        """
        self.cancel_session()
        img, fmt = decode_image(source_image_bytes)
        self._source = SourceImage(
            image=img,
            width=img.width,
            height=img.height,
            format=fmt,
        )
        self._viewport = ViewportState(zoom=self.min_zoom)
        self._state = _ACTIVE
        logger.info("Crop session started: %s %dx%d", fmt, img.width, img.height)
        return self._source

    def update_viewport(self, zoom: float, pan: tuple[float, float] = (0.0, 0.0)) -> CropRegion:
        """Recompute the crop region for *zoom* and *pan*.

        Zoom is clamped to the session's range and pan is restricted so the
        window stays inside the image; the restricted pan is stored.
        """
        if self._source is None:
            raise CropNotReadyError("no source image loaded")
        src = self._source
        zoom = clamp_zoom(zoom, self.min_zoom, self.max_zoom)
        pan = restrict_pan(src.width, src.height, self.aspect_ratio, zoom, pan)
        region = region_for_viewport(src.width, src.height, self.aspect_ratio, zoom, pan)
        self._viewport = ViewportState(zoom=zoom, pan_x=pan[0], pan_y=pan[1], region=region)
        return region

    def _prepare(self, source_image: SourceImage | None, crop_region: CropRegion | None):
        if self.has_pending_render:
            raise RenderError("a render is already in flight for this session")
        if self._state == _CLOSED:
            raise RenderError("source image is no longer available")
        if self._state == _IDLE:
            raise CropNotReadyError("no source image loaded")
        if source_image is not None and source_image is not self._source:
            raise RenderError("source image does not belong to this session")
        source = self._source
        region = crop_region or self._viewport.region
        if region is None:
            raise CropNotReadyError("adjust the crop area before confirming")
        check_aspect(region, self.aspect_ratio)
        return source, clamp_region(region, source.width, source.height)

    def _render_args(self, output_width, output_height, format, quality) -> tuple:
        return (
            output_width or self.output_width,
            output_height or self.output_height,
            format or self.format,
            self.quality if quality is None else quality,
            self.resample,
        )

    def confirm_crop(
        self,
        output_width: int | None = None,
        output_height: int | None = None,
        format: str | None = None,
        quality: float | None = None,
        *,
        source_image: SourceImage | None = None,
        crop_region: CropRegion | None = None,
    ) -> OutputImage:
        """Render the current region to a fixed-size encoded image.

        Output parameters default to the session's.  Raises
        ``CropNotReadyError`` before the first viewport update and
        ``RenderError`` once the source is gone or rendering fails; a
        render failure ends the session.
        """
        source, region = self._prepare(source_image, crop_region)
        try:
            output = render_crop(source.image, region, *self._render_args(
                output_width, output_height, format, quality))
        except RenderError:
            self._finish(self._generation, failed=True)
            raise
        self._finish(self._generation)
        return output

    def submit_crop(
        self,
        executor: Executor,
        output_width: int | None = None,
        output_height: int | None = None,
        format: str | None = None,
        quality: float | None = None,
        *,
        source_image: SourceImage | None = None,
        crop_region: CropRegion | None = None,
    ) -> PendingCrop:
        """Submit the render to *executor*; see ``confirm_crop`` for errors."""
        source, region = self._prepare(source_image, crop_region)
        future = executor.submit(
            render_crop, source.image, region,
            *self._render_args(output_width, output_height, format, quality),
        )
        self._pending = PendingCrop(self, future, self._generation)
        logger.debug("Submitted render for region %s", region.rounded())
        return self._pending

    def cancel_session(self) -> None:
        """Release the source and region.  Safe to call at any time."""
        if self._source is None and self._pending is None:
            return
        if self._state == _ACTIVE:
            logger.info("Crop session cancelled")
        self._release()

    # --- Internals ---

    def _release(self) -> None:
        self._source = None
        self._viewport = ViewportState(zoom=self.min_zoom)
        self._pending = None
        self._state = _CLOSED
        self._generation += 1

    def _finish(self, generation: int, failed: bool = False) -> None:
        """End the session once its render has been consumed."""
        if generation != self._generation:
            return
        if failed:
            logger.warning("Render failed; ending crop session")
        else:
            logger.info("Crop session confirmed")
        self._release()
