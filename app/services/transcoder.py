# services/transcoder.py
"""
Transcoding worker run inside the launched container.

Downloads SOURCE_KEY from the source bucket, encodes it once per resolution
profile with ffmpeg, and uploads each result to
`<source-stem>/<profile>.mp4` in the destination bucket. The scratch
directory is removed whether the job succeeds or fails.
"""
import shutil
import subprocess
import tempfile
from pathlib import Path, PurePosixPath
from typing import List, NamedTuple, Sequence

from core.logger import logger


class ResolutionProfile(NamedTuple):
    name: str
    scale: str
    video_bitrate: str


DEFAULT_PROFILES: List[ResolutionProfile] = [
    ResolutionProfile("480p", "scale=854:480", "1000k"),
    ResolutionProfile("720p", "scale=1280:720", "2500k"),
    ResolutionProfile("1080p", "scale=1920:1080", "5000k"),
]


class TranscodeError(Exception):
    """ffmpeg exited with a non-zero status."""


def destination_key(source_key: str, profile: ResolutionProfile) -> str:
    return f"{PurePosixPath(source_key).stem}/{profile.name}.mp4"


def build_ffmpeg_command(ffmpeg_bin: str, input_path: str, output_path: str, profile: ResolutionProfile) -> List[str]:
    return [
        ffmpeg_bin,
        "-i", input_path,
        "-vf", profile.scale,
        "-c:v", "libx264",
        "-b:v", profile.video_bitrate,
        "-preset", "medium",
        "-crf", "23",
        "-c:a", "aac",
        "-b:a", "128k",
        "-movflags", "+faststart",
        "-y",
        output_path,
    ]


class Transcoder:
    def __init__(
        self,
        s3,
        source_bucket: str,
        dest_bucket: str,
        ffmpeg_bin: str = "ffmpeg",
        tmp_root: str = "/tmp",
        profiles: Sequence[ResolutionProfile] = DEFAULT_PROFILES,
    ):
        self._s3 = s3
        self.source_bucket = source_bucket
        self.dest_bucket = dest_bucket
        self.ffmpeg_bin = ffmpeg_bin
        self.tmp_root = tmp_root
        self.profiles = list(profiles)

    def encode(self, input_path: str, output_path: str, profile: ResolutionProfile) -> None:
        cmd = build_ffmpeg_command(self.ffmpeg_bin, input_path, output_path, profile)
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            tail = (result.stderr or "").strip()[-500:]
            raise TranscodeError(f"FFmpeg failed for {profile.name} with status {result.returncode}: {tail}")

    def run(self, source_key: str) -> List[str]:
        """Transcode one source object; returns the uploaded destination keys."""
        logger.info(f"Starting transcoding job source=s3://{self.source_bucket}/{source_key} dest=s3://{self.dest_bucket}")

        workdir = Path(tempfile.mkdtemp(prefix="transcode-", dir=self.tmp_root))
        uploaded = []
        try:
            input_path = workdir / "input.mp4"
            self._s3.download_file(self.source_bucket, source_key, str(input_path))
            logger.info(f"Downloaded video from S3 ({input_path.stat().st_size} bytes)")

            for profile in self.profiles:
                output_path = workdir / f"output_{profile.name}.mp4"
                logger.info(f"Transcoding to {profile.name}...")
                self.encode(str(input_path), str(output_path), profile)

                dest_key = destination_key(source_key, profile)
                self._s3.upload_file(
                    str(output_path),
                    self.dest_bucket,
                    dest_key,
                    ExtraArgs={"ContentType": "video/mp4"},
                )
                output_path.unlink()
                uploaded.append(dest_key)
                logger.info(f"Completed {profile.name} -> s3://{self.dest_bucket}/{dest_key}")
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        logger.info("Transcoding job completed successfully")
        return uploaded
