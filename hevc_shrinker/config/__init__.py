"""
Configuration Package for the HEVC Shrinker.

This package centralizes the static configuration of the application. The
module-level constants are the defaults; `settings.ShrinkerSettings` folds in the
optional user YAML file and the command-line flags and freezes the result so it
can be handed to every service by parameter.

This package includes settings for:
- Logging format and the persisted-state locations (ledger, holding directory, error log).
- Recognized video extensions and the per-extension handling policy.
- The HEVC (x265) and AAC quality policy.
"""
