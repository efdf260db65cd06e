"""
Configuration settings related to video processing.

This module defines the recognized video extensions, the per-extension handling
policy and the defaults of the HEVC quality policy.
"""

# --- General Video Settings ---
VIDEO_EXTENSIONS = (
    ".mp4", ".mkv", ".wmv", ".avi", ".mov", ".flv", ".mpeg", ".mpg", ".m4v",
)
TARGET_CONTAINER_EXTENSION = ".mkv"

# --- Resolution / Frame-Rate Ceilings ---
MAX_HEIGHT = 1080
# Sources at or above this rate get every other frame dropped.
FRAME_HALVING_THRESHOLD = 50.0

# --- Encoder Settings (libx265) ---
HEVC_ENCODER = "libx265"
X265_CRF = 23
X265_PROFILE = "main10"
X265_NO_SAO = 1
X265_SELECTIVE_SAO = 0
# main10 needs a 10-bit input to the encoder.
HEVC_PIXEL_FORMAT = "yuv420p10le"
RESIZE_FLAGS = "lanczos"
# hqdn3d luma spatial strength; chroma and temporal strengths derive from it.
DENOISE_LEVEL = 4

# --- Per-Extension Policy ---
# combined_stream_load: load audio and video as one unit; addressing the streams
#   independently desynchronizes these containers.
# always_keep_new_encode: the new encode is kept without a size comparison
#   because the source cannot be fairly remuxed to MKV.
EXTENSION_POLICIES = {
    ".wmv": {"combined_stream_load": True, "always_keep_new_encode": True},
    ".flv": {"combined_stream_load": True, "always_keep_new_encode": True},
    ".avi": {"combined_stream_load": True, "always_keep_new_encode": True},
}
