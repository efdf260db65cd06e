"""
Configuration settings related to audio processing.

Audio is transcoded to AAC. The default backend is qaac in true VBR mode, fed with a
16-bit PCM WAV decoded by FFmpeg. Hosts without qaac can switch to FFmpeg's native
AAC encoder.
"""

# --- Audio Encoding Backends ---
AAC_ENCODER_QAAC = "qaac"
AAC_ENCODER_FFMPEG = "ffmpeg"
AAC_ENCODERS = (AAC_ENCODER_QAAC, AAC_ENCODER_FFMPEG)
DEFAULT_AAC_ENCODER = AAC_ENCODER_QAAC

# qaac `-V` true-VBR quality (0-127).
AAC_VBR_QUALITY = 100

# Used only by the ffmpeg backend.
FFMPEG_AAC_BITRATE = "192k"

# Intermediate PCM format handed to qaac.
WAV_CODEC = "pcm_s16le"
