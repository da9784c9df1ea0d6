"""ffmpeg invocation: fixed profile, start failures and exit codes."""

from __future__ import annotations

import asyncio
import shutil
import time

import pytest

from speakercast.errors import TranscodeError
from speakercast.services.transcoder import PLAYBACK_PROFILE, FfmpegTranscoder, TranscodeJob


def test_command_carries_fixed_speaker_profile(tmp_path):
    job = TranscodeJob(tmp_path / "in", tmp_path / "out.mp3")

    command = FfmpegTranscoder("ffmpeg").build_command(job)

    assert command[0] == "ffmpeg"
    joined = " ".join(command)
    assert "-ac 1" in joined
    assert "-ar 44100" in joined
    assert "-b:a 96k" in joined
    assert "-af highpass=f=200,dynaudnorm=f=150:g=15" in joined
    assert "-f mp3" in joined
    assert command[-1] == str(tmp_path / "out.mp3")
    assert job.profile is PLAYBACK_PROFILE


def test_missing_binary_fails_before_running(tmp_path):
    transcoder = FfmpegTranscoder(str(tmp_path / "no-such-ffmpeg"))
    job = TranscodeJob(tmp_path / "in", tmp_path / "out.mp3")

    with pytest.raises(TranscodeError, match="Could not start transcoder"):
        asyncio.run(transcoder.run(job))


@pytest.mark.skipif(shutil.which("false") is None, reason="needs the 'false' utility")
def test_non_zero_exit_is_a_failure(tmp_path):
    transcoder = FfmpegTranscoder(shutil.which("false"))
    job = TranscodeJob(tmp_path / "in", tmp_path / "out.mp3")

    with pytest.raises(TranscodeError, match=r"ffmpeg failed \(1\)"):
        asyncio.run(transcoder.run(job))


@pytest.mark.skipif(shutil.which("true") is None, reason="needs the 'true' utility")
def test_success_without_output_is_a_failure(tmp_path):
    transcoder = FfmpegTranscoder(shutil.which("true"))
    job = TranscodeJob(tmp_path / "in", tmp_path / "out.mp3")

    with pytest.raises(TranscodeError, match="empty output"):
        asyncio.run(transcoder.run(job))


@pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg is not installed")
def test_real_ffmpeg_produces_mp3(tmp_path, wav_factory):
    source = tmp_path / "tone"
    source.write_bytes(wav_factory(seconds=0.5))
    job = TranscodeJob(source, tmp_path / "tone.mp3")

    output = asyncio.run(FfmpegTranscoder().run(job))

    assert output.stat().st_size > 0
    assert output.stat().st_size < source.stat().st_size


@pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg is not installed")
def test_real_ffmpeg_rejects_garbage(tmp_path):
    source = tmp_path / "garbage"
    source.write_bytes(b"definitely not audio" * 10)

    with pytest.raises(TranscodeError):
        asyncio.run(FfmpegTranscoder().run(TranscodeJob(source, tmp_path / "garbage.mp3")))


def _slow_fake_ffmpeg(tmp_path):
    """Shell stand-in that writes its output argument only after a delay."""

    script = tmp_path / "slow-ffmpeg"
    script.write_text('#!/bin/sh\nfor last; do :; done\nsleep 1\necho late > "$last"\n')
    script.chmod(0o755)
    return str(script)


@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
def test_cancellation_kills_ffmpeg_before_it_writes(tmp_path):
    transcoder = FfmpegTranscoder(_slow_fake_ffmpeg(tmp_path))
    job = TranscodeJob(tmp_path / "in", tmp_path / "out.mp3")

    async def _cancel_mid_run():
        task = asyncio.create_task(transcoder.run(job))
        await asyncio.sleep(0.3)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_cancel_mid_run())
    time.sleep(1.2)

    assert not job.output_path.exists()
