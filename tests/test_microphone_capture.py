# tests/test_microphone_capture.py
import numpy as np
import pytest
from unittest.mock import Mock, patch

try:
    import sounddevice as sd
except (ImportError, OSError) as e:  # PortAudio missing on headless machines
    pytest.skip(f"sounddevice unavailable: {e}", allow_module_level=True)

from voicetally.errors import MicrophonePermissionError
from voicetally.sound.MicrophoneCapture import MicrophoneCapture


class TestMicrophoneCapture:
    """Tests for MicrophoneCapture - sounddevice input stream to PCM chunks."""

    @pytest.fixture
    def config(self):
        return {
            'audio': {
                'sample_rate': 16000,
                'chunk_duration': 0.1
            }
        }

    def test_chunk_size(self, config):
        capture = MicrophoneCapture(config)

        assert capture.chunk_size == 1600

    def test_audio_callback_emits_int16_pcm(self, config):
        """Callback converts the first channel to 16-bit little-endian PCM.

        Logic: float32 [-1, 1] → clip → scale by 32767 → '<i2' bytes.
        """
        capture = MicrophoneCapture(config)
        on_chunk = Mock()
        capture._on_chunk = on_chunk

        indata = np.array([[0.0, 0.9], [0.5, 0.9], [-1.0, 0.9], [2.0, 0.9]], dtype=np.float32)
        capture.audio_callback(indata, 4, None, None)

        pcm = np.frombuffer(on_chunk.call_args[0][0], dtype='<i2')
        assert pcm.tolist() == [0, 16383, -32767, 32767]

    def test_audio_callback_without_consumer(self, config):
        capture = MicrophoneCapture(config)

        capture.audio_callback(np.zeros((4, 1), dtype=np.float32), 4, None, None)

    def test_start_opens_stream(self, config):
        stream = Mock()
        on_chunk = Mock()

        with patch('sounddevice.InputStream', return_value=stream) as input_stream:
            capture = MicrophoneCapture(config)
            capture.start(on_chunk)

        kwargs = input_stream.call_args.kwargs
        assert kwargs['samplerate'] == 16000
        assert kwargs['channels'] == 1
        assert kwargs['blocksize'] == 1600
        assert kwargs['callback'] == capture.audio_callback
        stream.start.assert_called_once()
        assert capture.is_running

    def test_start_failure_raises_permission_error(self, config):
        with patch('sounddevice.InputStream', side_effect=sd.PortAudioError("Device unavailable")):
            capture = MicrophoneCapture(config)

            with pytest.raises(MicrophonePermissionError, match="Device unavailable"):
                capture.start(Mock())

        assert not capture.is_running
        assert capture.stream is None

    def test_stop_closes_stream(self, config):
        stream = Mock()

        with patch('sounddevice.InputStream', return_value=stream):
            capture = MicrophoneCapture(config)
            capture.start(Mock())
            capture.stop()

        stream.stop.assert_called_once()
        stream.close.assert_called_once()
        assert capture.stream is None
        assert not capture.is_running

    def test_stop_without_start(self, config):
        MicrophoneCapture(config).stop()
