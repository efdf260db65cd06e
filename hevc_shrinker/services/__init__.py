"""
Services Package for HEVC Shrinker.

This package contains the "service layer" of the application. A service is a class
that performs one specific, high-level task. The pipeline coordinates them; the
domain package holds the data they exchange.

- **Decision Engine (`DecisionEngine`):**
  Classifies a probed file (skip, keep, remux, transcode) and builds its
  `EncodingPlan`.

- **Media Engine (`MediaEngine`, `VideoEncoder`, `AudioEncoder`, `Muxer`):**
  Everything that runs ffmpeg, ffprobe or qaac. Each stage turns a tool failure
  into the matching `WorkUnitException`.

- **Safe Replacement Protocol (`SafeReplacementProtocol`, `HoldingArea`):**
  Temp files, the size comparison, atomic promotion and relocation of displaced
  files into the holding directory.

- **Ledger (`ProcessedFileLedger`):**
  The SQLite record of finalized files that makes repeat runs idempotent.

- **File Processing Service (`ProcessVideoFiles`):**
  Discovers video files and stale temp artifacts below the scan root.

- **Logging Service (`ErrorLog`):**
  The append-only, one-line-per-failure error log.
"""
