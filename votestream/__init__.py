# ==============================================
# votestream
# ==============================================
#
# Package Structure:
#
# votestream/
# ├── storage/          # Poll options (filter terms) from MongoDB
# ├── stream/           # Connection lifecycle, signing, decoding, reader loop
# ├── publishing/       # Vote queue and NSQ publisher
# ├── shutdown.py       # Signal handling and stop propagation
# ├── config.py         # Configuration management
# ├── app.py            # Orchestrator wiring all threads together
# └── cli.py            # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
