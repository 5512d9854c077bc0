"""Model file management: locate, download, verify and delete the acoustic model."""

import os
import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

import aiohttp

from .ggml import read_model_header
from ..errors import (
    BackendUnavailableError,
    ModelDownloadError,
    ModelLoadError,
    ModelNotFoundError,
    ModelStoreError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL_URL = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main/ggml-base.en.bin"
DEFAULT_MODEL_FILENAME = "ggml-base.en.bin"
PARTIAL_SUFFIX = ".part"


class ModelStore:
    """Manages the single on-disk whisper model file."""

    def __init__(self,
                 model_dir: Union[str, Path],
                 filename: str = DEFAULT_MODEL_FILENAME,
                 url: str = DEFAULT_MODEL_URL,
                 loader: Optional[Callable[[Path], Any]] = None,
                 verify_with_loader: bool = False,
                 download_chunk_size: int = 64 * 1024,
                 download_timeout: float = 600.0):
        """Initialize model store.

        Args:
            model_dir: Directory holding the model file
            filename: Model file name
            url: Remote location of the model
            loader: Builds an inference backend from a model path
            verify_with_loader: Also run a full load when verifying a file
            download_chunk_size: Bytes read per download chunk
            download_timeout: Total download timeout in seconds
        """
        self.model_dir = Path(model_dir)
        self.filename = filename
        self.url = url
        self.loader = loader
        self.verify_with_loader = verify_with_loader
        self.download_chunk_size = download_chunk_size
        self.download_timeout = download_timeout

        logger.info(f"ModelStore initialized: {self.model_path()}")

    @classmethod
    def from_config(cls, config, loader: Optional[Callable[[Path], Any]] = None) -> "ModelStore":
        return cls(
            model_dir=config.get_model_directory(),
            filename=config.get('model.filename', DEFAULT_MODEL_FILENAME),
            url=config.get('model.url', DEFAULT_MODEL_URL),
            loader=loader,
            verify_with_loader=config.get('model.verify_with_full_load', False),
            download_chunk_size=config.get('model.download_chunk_size', 64 * 1024),
            download_timeout=config.get('model.download_timeout_seconds', 600),
        )

    def model_path(self) -> Path:
        return self.model_dir / self.filename

    def partial_path(self) -> Path:
        return self.model_dir / (self.filename + PARTIAL_SUFFIX)

    def is_present_and_valid(self) -> bool:
        """Check the model file, deleting it if it fails verification.

        Raises:
            BackendUnavailableError: The verification loader could not import
                its backend; the file is left in place
        """
        path = self.model_path()
        logger.debug(f"Checking for model at: {path}")

        if not path.exists():
            logger.info("Model file does not exist")
            return False

        try:
            self._verify(path)
        except BackendUnavailableError:
            raise
        except Exception as e:
            logger.warning(f"Failed to verify model, removing it: {e}")
            self._remove_quietly(path)
            return False

        logger.info("Model verified successfully")
        return True

    def _verify(self, path: Path) -> None:
        header = read_model_header(path)
        logger.debug(f"Model header: {header}")

        if self.verify_with_loader and self.loader is not None:
            handle = self._call_loader(path)
            cleanup = getattr(handle, "cleanup", None)
            if cleanup:
                cleanup()

    def _call_loader(self, path: Path) -> Any:
        try:
            return self.loader(path)
        except ImportError as e:
            raise BackendUnavailableError(f"Inference backend is not available: {e}") from e

    def load(self) -> Any:
        """Load the model through the configured loader.

        Raises:
            ModelNotFoundError: The model file is absent
            ModelLoadError: The file is corrupt or the loader failed; the file
                is removed before raising
            BackendUnavailableError: The backend could not be imported; the
                file is left in place
        """
        path = self.model_path()
        if not path.exists():
            raise ModelNotFoundError(f"Whisper model not found at {path}")
        if self.loader is None:
            raise ModelLoadError("No model loader configured")

        try:
            read_model_header(path)
            return self._call_loader(path)
        except BackendUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Failed to load Whisper model, removing it: {e}")
            self._remove_quietly(path)
            raise ModelLoadError(f"Failed to load Whisper model: {e}") from e

    async def download(self, progress_callback: Optional[Callable[[float], None]] = None) -> Path:
        """Download the model, verify it and move it into place.

        Args:
            progress_callback: Receives cumulative percentage after every chunk

        Returns:
            Path of the verified model file

        Raises:
            ModelDownloadError: Network failure, HTTP error or failed verification;
                no model file is left behind
        """
        final_path = self.model_path()
        partial_path = self.partial_path()

        logger.info(f"Model will be downloaded to: {final_path}")
        try:
            self.model_dir.mkdir(parents=True, exist_ok=True)
            if final_path.exists():
                logger.info("Removing existing model file")
                final_path.unlink()
            if partial_path.exists():
                partial_path.unlink()
        except OSError as e:
            raise ModelDownloadError(f"Failed to prepare model directory: {e}") from e

        completed = False
        try:
            await self._fetch(partial_path, progress_callback)

            logger.info("Download complete, verifying model...")
            try:
                self._verify(partial_path)
            except BackendUnavailableError:
                # Header is valid; only the backend is missing
                os.replace(partial_path, final_path)
                completed = True
                raise
            except Exception as e:
                raise ModelDownloadError(f"Failed to load downloaded model: {e}") from e

            os.replace(partial_path, final_path)
            completed = True
        finally:
            if not completed:
                self._remove_quietly(partial_path)
                self._remove_quietly(final_path)

        logger.info("Model downloaded and verified successfully")
        return final_path

    async def _fetch(self, target: Path, progress_callback: Optional[Callable[[float], None]]) -> None:
        timeout = aiohttp.ClientTimeout(total=self.download_timeout)
        logger.info(f"Downloading model from {self.url}")
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.url) as response:
                    response.raise_for_status()
                    total_size = response.content_length or 0
                    downloaded = 0
                    logger.info(f"Starting download of {total_size} bytes")

                    with open(target, "wb") as f:
                        async for chunk in response.content.iter_chunked(self.download_chunk_size):
                            f.write(chunk)
                            downloaded += len(chunk)
                            self._report_progress(progress_callback, downloaded, total_size)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ModelDownloadError(f"Download error: {e}") from e
        except OSError as e:
            raise ModelDownloadError(f"Failed to write model file: {e}") from e

        if total_size and downloaded != total_size:
            raise ModelDownloadError(f"Download incomplete: {downloaded} of {total_size} bytes")

    def _report_progress(self, progress_callback, downloaded: int, total_size: int) -> None:
        if progress_callback is None:
            return
        progress = (downloaded / total_size) * 100.0 if total_size else 0.0
        try:
            progress_callback(progress)
        except Exception as e:
            logger.warning(f"Failed to report download progress: {e}")

    def size(self) -> int:
        """Model file size in bytes, 0 if absent."""
        path = self.model_path()
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            logger.debug("Model file does not exist")
            return 0
        except OSError as e:
            raise ModelStoreError(f"Failed to get model size: {e}") from e

        logger.debug(f"Model size: {size} bytes ({size / (1024 * 1024):.2f} MB)")
        return size

    def delete(self) -> None:
        """Delete the model file (and any partial download); no-op if absent."""
        path = self.model_path()
        self._remove_quietly(self.partial_path())

        if not path.exists():
            logger.info(f"Whisper model file not found at: {path}")
            return

        try:
            # Read-only files cannot be removed on some platforms
            os.chmod(path, 0o644)
        except OSError as e:
            raise ModelStoreError(f"Failed to set file permissions: {e}") from e

        try:
            path.unlink()
        except OSError as e:
            raise ModelStoreError(f"Failed to delete model: {e}") from e
        logger.info("Successfully deleted whisper model")

    def _remove_quietly(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")
