"""Media Assembler - stitches clips into the final video with ffmpeg."""

import subprocess
import tempfile
from pathlib import Path
from typing import Any, Optional

import imageio_ffmpeg
import requests
from moviepy import VideoFileClip
from PIL import Image, ImageDraw, ImageFont

from newsreel.core.config import Settings
from newsreel.models.schemas import AssembledMedia
from newsreel.utils.error_handler import MediaAssemblyError

STDERR_TAIL_CHARS = 2000
DOWNLOAD_CHUNK_BYTES = 1024 * 1024

OVERLAY_X = 54
OVERLAY_Y = 70
OVERLAY_PADDING = 18
OVERLAY_LINE_SPACING = 8
OVERLAY_BOX_RGBA = (0, 0, 0, 140)
OVERLAY_TEXT_RGBA = (255, 255, 255, 255)

FONT_CANDIDATES = [
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "C:/Windows/Fonts/arialbd.ttf",
]


def concat_list_line(path: Path) -> str:
    """One line of an ffmpeg concat demuxer list for a file path."""
    quoted = str(path.resolve()).replace("\\", "/").replace("'", "'\\''")
    return f"file '{quoted}'"


def probe_duration(path: Path) -> float:
    """Return the duration of a video file in seconds."""
    with VideoFileClip(str(path), audio=False) as clip:
        return float(clip.duration)


def probe_frame_size(path: Path) -> tuple[int, int]:
    """Return (width, height) of a video file."""
    with VideoFileClip(str(path), audio=False) as clip:
        width, height = clip.size
        return int(width), int(height)


def load_overlay_font(size: int, font_file: Optional[str] = None) -> Any:
    """Load the configured font, then a bold system font, then Pillow's default."""
    candidates = ([font_file] if font_file else []) + FONT_CANDIDATES
    for path in candidates:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def wrap_text(text: str, font: Any, max_width: float) -> list[str]:
    """Greedy word wrap by rendered width; a single long word keeps its own line."""
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and font.getlength(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def render_overlay_image(text: str, frame_width: int, font_size: int, font_file: Optional[str] = None) -> Image.Image:
    """
    Rasterize headline text on a semi-opaque box.

    The text is drawn as pixels, so characters such as ':' or "'" never reach
    an ffmpeg filter expression.

    Args:
        text: Headline; runs of whitespace and newlines collapse to one space
        frame_width: Width of the video the box is laid over
        font_size: Font size in pixels
        font_file: Optional font path tried before the built-in candidates

    Returns:
        RGBA image sized to the wrapped text plus padding
    """
    font = load_overlay_font(font_size, font_file)
    max_text_width = max(font_size, frame_width - 2 * OVERLAY_X - 2 * OVERLAY_PADDING)
    block = "\n".join(wrap_text(" ".join(text.split()), font, max_text_width))

    measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = measure.multiline_textbbox((0, 0), block, font=font, spacing=OVERLAY_LINE_SPACING)
    size = (right - left + 2 * OVERLAY_PADDING, bottom - top + 2 * OVERLAY_PADDING)

    image = Image.new("RGBA", size, OVERLAY_BOX_RGBA)
    draw = ImageDraw.Draw(image)
    draw.multiline_text(
        (OVERLAY_PADDING - left, OVERLAY_PADDING - top),
        block,
        font=font,
        fill=OVERLAY_TEXT_RGBA,
        spacing=OVERLAY_LINE_SPACING,
    )
    return image


class MediaAssembler:
    """Concatenates clips, muxes narration, burns the headline and extracts a thumbnail."""

    def __init__(self, settings: Settings, logger: Any, http: Optional[requests.Session] = None):
        """
        Initialize media assembler.

        Args:
            settings: Application settings
            logger: Logger instance
            http: Optional HTTP session used to download clips
        """
        self.settings = settings
        self.logger = logger
        self.http = http or requests.Session()
        self.ffmpeg = settings.ffmpeg_binary or imageio_ffmpeg.get_ffmpeg_exe()

    def assemble(
        self,
        clip_urls: list[str],
        overlay_text: Optional[str] = None,
        separate_audio: Optional[bytes] = None,
    ) -> AssembledMedia:
        """
        Build the final video and thumbnail from ordered clips.

        Steps: download clips, concatenate without re-encoding, mux the
        separate narration (output ends with the shorter stream), burn the
        overlay text, grab the first frame as thumbnail. The working
        directory is removed whether or not assembly succeeds.

        Args:
            clip_urls: Clip URLs in playback order
            overlay_text: Headline to burn into the video (skipped if empty)
            separate_audio: Narration audio to replace the clips' audio (skipped if None)

        Returns:
            Video bytes, thumbnail bytes and the probed duration

        Raises:
            MediaAssemblyError: If any download or ffmpeg step fails
        """
        if not clip_urls:
            raise MediaAssemblyError("No clips to assemble")

        with tempfile.TemporaryDirectory(prefix="newsreel-") as tmp:
            workdir = Path(tmp)
            self.logger.debug(f"Assembling {len(clip_urls)} clips in {workdir}")

            clip_paths = [
                self._download(url, workdir / f"clip-{index:03d}.mp4") for index, url in enumerate(clip_urls)
            ]
            current = self._concatenate(clip_paths, workdir)

            if separate_audio is not None:
                current = self._mux_audio(current, separate_audio, workdir)

            if overlay_text and overlay_text.strip():
                current = self._burn_overlay(current, overlay_text, workdir)

            thumbnail = self._extract_thumbnail(current, workdir)
            duration = self._probe(current)

            return AssembledMedia(
                video=current.read_bytes(),
                thumbnail=thumbnail.read_bytes(),
                duration_seconds=duration,
            )

    def _download(self, url: str, dest: Path) -> Path:
        try:
            response = self.http.get(url, stream=True, timeout=self.settings.download_timeout_seconds)
        except requests.RequestException as e:
            raise MediaAssemblyError(f"Failed to download: {url} ({e})") from e

        try:
            if response.status_code != 200:
                raise MediaAssemblyError(f"Failed to download: {url} ({response.status_code})")
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            raise MediaAssemblyError(f"Failed to download: {url} ({e})") from e
        finally:
            response.close()
        return dest

    def _concatenate(self, clip_paths: list[Path], workdir: Path) -> Path:
        list_file = workdir / "concat.txt"
        list_file.write_text("\n".join(concat_list_line(p) for p in clip_paths) + "\n", encoding="utf-8")
        output = workdir / "concat.mp4"
        self._run_ffmpeg(["-f", "concat", "-safe", "0", "-i", str(list_file), "-c", "copy", str(output)])
        return output

    def _mux_audio(self, video: Path, audio: bytes, workdir: Path) -> Path:
        audio_path = workdir / "voiceover.mp3"
        audio_path.write_bytes(audio)
        output = workdir / "voiced.mp4"
        self._run_ffmpeg(
            [
                "-i", str(video),
                "-i", str(audio_path),
                "-map", "0:v:0",
                "-map", "1:a:0",
                "-c:v", "copy",
                "-c:a", "aac",
                "-shortest",
                str(output),
            ]
        )
        return output

    def _render_overlay(self, video: Path, text: str, workdir: Path) -> Path:
        try:
            frame_width, _ = probe_frame_size(video)
        except Exception as e:
            raise MediaAssemblyError(f"Could not read frame size of {video.name}: {e}") from e

        image = render_overlay_image(
            text,
            frame_width,
            self.settings.overlay_font_size,
            self.settings.overlay_font_file,
        )
        output = workdir / "overlay.png"
        image.save(output, format="PNG")
        return output

    def _burn_overlay(self, video: Path, text: str, workdir: Path) -> Path:
        overlay = self._render_overlay(video, text, workdir)
        output = workdir / "final.mp4"
        self._run_ffmpeg(
            [
                "-i", str(video),
                "-i", str(overlay),
                "-filter_complex", f"[0:v][1:v]overlay={OVERLAY_X}:{OVERLAY_Y}[v]",
                "-map", "[v]",
                "-map", "0:a?",
                "-c:v", "libx264",
                "-preset", "veryfast",
                "-pix_fmt", "yuv420p",
                "-c:a", "copy",
                str(output),
            ]
        )
        return output

    def _extract_thumbnail(self, video: Path, workdir: Path) -> Path:
        output = workdir / "thumb.png"
        self._run_ffmpeg(["-i", str(video), "-frames:v", "1", "-q:v", "2", str(output)])
        return output

    def _probe(self, video: Path) -> Optional[float]:
        """Duration is informational; a failed probe is logged, not raised."""
        try:
            return probe_duration(video)
        except Exception as e:
            self.logger.warning(f"Could not probe duration of {video.name}: {e}")
            return None

    def _run_ffmpeg(self, args: list[str]) -> None:
        cmd = [self.ffmpeg, "-y", "-hide_banner", "-loglevel", "error", *args]
        self.logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise MediaAssemblyError(f"ffmpeg could not be started: {e}") from e
        if result.returncode != 0:
            raise MediaAssemblyError(f"ffmpeg failed ({result.returncode}): {(result.stderr or '')[-STDERR_TAIL_CHARS:]}")
