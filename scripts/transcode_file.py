import asyncio
import os
import sys
from pathlib import Path

# Add project root to path so we can import speakercast
sys.path.append(os.getcwd())

from speakercast.config.settings import settings
from speakercast.errors import TranscodeError
from speakercast.services.transcoder import FfmpegTranscoder, TranscodeJob


async def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/transcode_file.py path/to/input [path/to/output.mp3]")
        return

    input_path = Path(sys.argv[1])
    if not input_path.exists():
        print(f"File '{input_path}' not found.")
        return
    output_path = Path(sys.argv[2]) if len(sys.argv) > 2 else input_path.with_name(f"{input_path.stem}-speaker.mp3")

    transcoder = FfmpegTranscoder(settings.transcoder.binary)
    print("Command:", " ".join(transcoder.build_command(TranscodeJob(input_path, output_path))))
    try:
        result = await transcoder.run(TranscodeJob(input_path, output_path))
    except TranscodeError as e:
        print(f"\nTranscode Error: {e}")
        return

    before = input_path.stat().st_size
    after = result.stat().st_size
    print(f"\n{input_path.name}: {before} bytes -> {result.name}: {after} bytes ({after / before:.0%})")


if __name__ == "__main__":
    asyncio.run(main())
