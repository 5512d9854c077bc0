"""Exception types raised by the speech pipeline."""


class CornerSpeechError(Exception):
    """Base class for all cornerspeech errors."""


class AudioDeviceError(CornerSpeechError):
    """The input device could not be used for capture."""


class NoInputDeviceError(AudioDeviceError):
    """No default input device is available."""


class UnsupportedSampleFormatError(AudioDeviceError):
    """The device rejected every supported sample format."""


class ModelStoreError(CornerSpeechError):
    """Filesystem error while inspecting or removing the model file."""


class ModelDownloadError(ModelStoreError):
    """Download failed or the downloaded file did not verify."""


class ModelNotFoundError(ModelStoreError):
    """The model file is not present on disk."""


class ModelFormatError(ModelStoreError):
    """The model file header is not a valid ggml whisper header."""


class ModelLoadError(ModelStoreError):
    """The model file could not be loaded by the inference backend."""


class BackendUnavailableError(CornerSpeechError):
    """The inference backend library could not be imported."""


class TranscriptionError(CornerSpeechError):
    """Inference failed for a chunk."""


class RecordingError(CornerSpeechError):
    """A recording command was issued in the wrong state."""


class SchedulerError(CornerSpeechError):
    """The chunk scheduler was started or stopped in the wrong state."""
