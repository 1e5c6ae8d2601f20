import argparse
import json
import logging
from pathlib import Path
from tempfile import TemporaryDirectory
from urllib.parse import urlparse

import yt_dlp
from video_chapters import ChapterPipelineError, get_settings, process_video


def parse_args() -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Generate YouTube chapter timestamps for a video.")
	parser.add_argument("video", help="Path to the input video file or a video URL")
	parser.add_argument(
		"--strategy",
		choices=("transcode", "direct"),
		help="Extract compact audio with ffmpeg first (transcode) or upload the video as-is (direct)",
	)
	parser.add_argument(
		"--ffmpeg-path",
		dest="ffmpeg_path",
		help="Path to the ffmpeg executable (defaults to FFMPEG_PATH, PATH lookup, then imageio-ffmpeg)",
	)
	parser.add_argument(
		"--transcription-model",
		dest="transcription_model",
		help="Replicate model reference used for transcription",
	)
	parser.add_argument(
		"--generation-model",
		dest="generation_model",
		help="Replicate model reference used for chapter generation",
	)
	parser.add_argument(
		"--max-tokens",
		dest="max_tokens",
		type=int,
		help="Maximum output tokens for chapter generation",
	)
	parser.add_argument(
		"--transcript-only",
		dest="transcript_only",
		action="store_true",
		help="Stop after transcription and print the timestamped transcript",
	)
	parser.add_argument(
		"--chapters-only",
		dest="chapters_only",
		action="store_true",
		help="Print only the chapter list instead of the full result payload",
	)
	parser.add_argument("--debug", action="store_true", help="Enable debug logging")
	return parser.parse_args()


def is_url(value: str) -> bool:
	parsed = urlparse(value)
	return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def download_video(video_url: str, output_dir: Path) -> Path:
	options = {
		"outtmpl": str(output_dir / "%(title).200s.%(ext)s"),
		"quiet": True,
		"no_warnings": True,
		"retries": 5,
	}
	with yt_dlp.YoutubeDL(options) as downloader:
		info = downloader.extract_info(video_url, download=True)
		filepath = downloader.prepare_filename(info)
	return Path(filepath)


def build_settings(args: argparse.Namespace):
	overrides = {
		"ffmpeg_path": args.ffmpeg_path,
		"transcription_model": args.transcription_model,
		"generation_model": args.generation_model,
		"generation_max_tokens": args.max_tokens,
		"transcription_strategy": args.strategy,
	}
	overrides = {key: value for key, value in overrides.items() if value is not None}
	return get_settings().model_copy(update=overrides)


def main() -> int:
	args = parse_args()
	settings = build_settings(args)
	logging.basicConfig(
		level=logging.DEBUG if args.debug else settings.log_level.upper(),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)

	video_input = args.video
	try:
		if is_url(video_input):
			with TemporaryDirectory() as tmpdir:
				downloaded_video = download_video(video_input, Path(tmpdir))
				result = process_video(downloaded_video, settings=settings, transcript_only=args.transcript_only)
		else:
			result = process_video(Path(video_input), settings=settings, transcript_only=args.transcript_only)
	except ChapterPipelineError as exc:
		print(json.dumps(exc.to_payload(), ensure_ascii=False, indent=2))
		return 1

	if args.transcript_only:
		print(result["transcript"])
	elif args.chapters_only:
		chapters = result.get("chapters")
		print(chapters if chapters is not None else result.get("chapters_error", ""))
	else:
		print(json.dumps(result, ensure_ascii=False, indent=2))

	if result.get("chapters_error"):
		return 1
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
