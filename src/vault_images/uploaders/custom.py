"""
Uploader that shells out to a user-configured command.

The command is expected to print ``Successfully uploaded:`` followed by
one ``[n] <url>`` line per file, numbered from 1 in input order. This is
the output format of PicGo-style command line uploaders.
"""

import asyncio
import re
import shlex

from loguru import logger

from .base import UploadCallbacks, UploadError, Uploader

SUCCESS_MARKER = "Successfully uploaded:"
URL_LINE_PATTERN = re.compile(r"^\[(\d+)\]\s*(https?://\S+)")


def parse_upload_output(output: str, file_count: int) -> list[str]:
    """
    Extract the uploaded URLs from the command output.

    Args:
        output: Captured stdout of the upload command
        file_count: Number of files that were handed to the command

    Returns:
        URLs ordered by their index

    Raises:
        UploadError: If the marker is missing or the URL count does not match
    """
    if SUCCESS_MARKER not in output:
        raise UploadError(f"Upload output does not contain '{SUCCESS_MARKER}'")

    urls_by_index: dict[int, str] = {}
    for line in output.split(SUCCESS_MARKER, 1)[1].splitlines():
        match = URL_LINE_PATTERN.match(line.strip())
        if match:
            urls_by_index[int(match.group(1))] = match.group(2)

    if not urls_by_index:
        raise UploadError("Upload output contains no URL")
    if len(urls_by_index) != file_count:
        raise UploadError(
            f"Upload returned {len(urls_by_index)} URLs for {file_count} files"
        )

    return [url for _, url in sorted(urls_by_index.items())]


class CustomUploader(Uploader):
    """Runs an external upload command and parses the URLs it prints."""

    def __init__(self, command: str):
        """
        Initialize the uploader.

        Args:
            command: Command line; the files are appended as extra arguments
        """
        self.command = command

    async def upload(self, files: str, callbacks: UploadCallbacks | None = None) -> str:
        callbacks = callbacks or UploadCallbacks()

        if not self.command.strip():
            message = "Upload command is empty"
            callbacks.error(message)
            raise UploadError(message)

        file_list = [f for f in files.split(",") if f]
        argv = shlex.split(self.command) + file_list
        logger.debug("Running upload command: {}", argv)
        callbacks.start()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            message = f"Could not run upload command: {e}"
            callbacks.error(message)
            raise UploadError(message) from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        async def pump(stream: asyncio.StreamReader, sink: list[str], report: bool) -> None:
            async for raw in stream:
                line = raw.decode(errors="replace")
                sink.append(line)
                if report:
                    callbacks.progress(line.rstrip())

        await asyncio.gather(
            pump(process.stdout, stdout_lines, True),
            pump(process.stderr, stderr_lines, False),
        )
        returncode = await process.wait()
        stderr = "".join(stderr_lines).strip()

        if returncode != 0:
            message = f"Upload command exited with status {returncode}: {stderr or 'no output'}"
            callbacks.error(message)
            raise UploadError(message)
        if stderr:
            logger.warning("Upload command wrote to stderr: {}", stderr)

        try:
            urls = parse_upload_output("".join(stdout_lines), len(file_list))
        except UploadError as e:
            callbacks.error(str(e))
            raise

        result = ",".join(urls)
        logger.info("Uploaded {} file(s)", len(urls))
        callbacks.success(result)
        return result
