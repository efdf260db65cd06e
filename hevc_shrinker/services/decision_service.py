"""
The decision engine.

Given a probed file it decides whether the file is skipped, kept, rewrapped or
rebuilt, and for rebuilds which streams are copied and which are re-encoded. It is
pure: no I/O beyond the ledger lookup, and every policy value comes from the
`ShrinkerSettings` passed in.
"""
from typing import Optional, Tuple

from loguru import logger

from ..config.settings import ShrinkerSettings
from ..domain.media import Codec, DiscoveredFile, MediaProfile
from ..domain.plan import AudioAction, Decision, EncodingPlan, ExtensionPolicy, Verdict, VideoAction


def compute_resize(width: int, height: int, max_height: int) -> Optional[Tuple[int, int]]:
    """
    Target (width, height) for a source taller than `max_height`, else None.

    Height becomes `max_height`; width is scaled proportionally, floored, and made
    even by dropping one pixel if needed. Missing dimensions (0) never resize.
    """
    if height <= max_height or height <= 0 or width <= 0:
        return None
    new_width = width * max_height // height
    if new_width % 2:
        new_width -= 1
    return new_width, max_height


class DecisionEngine:
    """Classifies files and builds encoding plans."""

    def __init__(self, settings: ShrinkerSettings, ledger=None):
        self.settings = settings
        self.ledger = ledger

    def is_already_processed(self, source: DiscoveredFile) -> bool:
        return self.ledger is not None and self.ledger.lookup(source.path)

    def classify(self, source: DiscoveredFile, profile: MediaProfile) -> Decision:
        """
        Verdict for a probed file; the first matching rule wins.

        1. Already optimal (HEVC/AAC, within height and frame-rate limits):
           KEEP_AS_IS when already MKV, otherwise REMUX_ONLY.
        2. Target codecs but a limit is exceeded: rebuild the video, copy the audio.
        3. Anything else: copy whichever stream already has its target codec.

        The ledger check happens before probing; see `is_already_processed`.
        """
        s = self.settings
        too_tall = profile.needs_downscale(s.max_height)
        too_fast = profile.needs_frame_halving(s.frame_halving_threshold)

        if profile.is_target_codec and not too_tall and not too_fast:
            if source.is_mkv:
                return Decision(Verdict.KEEP_AS_IS, reason="already HEVC/AAC in MKV within limits")
            return Decision(Verdict.REMUX_ONLY, reason=f"already HEVC/AAC, rewrap {source.extension} to MKV")

        if profile.is_target_codec:
            limits = [name for name, hit in (("height", too_tall), ("frame rate", too_fast)) if hit]
            reason = f"HEVC/AAC but {' and '.join(limits)} over the limit"
        else:
            reason = f"codecs {profile.video_codec_name or '?'}/{profile.audio_codec_name or 'none'}"

        return Decision(Verdict.TRANSCODE, plan=self.plan(source, profile), reason=reason)

    def plan(self, source: DiscoveredFile, profile: MediaProfile) -> EncodingPlan:
        """
        Builds the EncodingPlan for a TRANSCODE verdict.

        A video stream is only copied when it is HEVC and needs neither a resize nor
        frame halving, since a copied stream cannot be filtered. Audio is copied when
        it is already AAC.
        """
        s = self.settings
        policy = ExtensionPolicy.for_extension(source.extension)
        resize_to = compute_resize(profile.width, profile.height, s.max_height)
        halve = profile.needs_frame_halving(s.frame_halving_threshold)

        if profile.video_codec is Codec.HEVC and resize_to is None and not halve:
            video_action = VideoAction.COPY_EXISTING
        else:
            video_action = VideoAction.TRANSCODE_TO_HEVC

        if not profile.has_audio:
            audio_action = AudioAction.NO_AUDIO
        elif profile.audio_codec is Codec.AAC:
            audio_action = AudioAction.COPY_EXISTING
        else:
            audio_action = AudioAction.TRANSCODE_TO_AAC

        plan = EncodingPlan(
            video_action=video_action,
            audio_action=audio_action,
            resize_to=resize_to,
            halve_frame_rate=halve,
            combined_stream_load=policy.combined_stream_load,
            always_keep_new_encode=policy.always_keep_new_encode,
        )
        logger.debug(f"Plan for {source.path.name}: {plan.describe()}")
        return plan
