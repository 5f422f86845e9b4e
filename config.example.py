# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # Logging
    "TICKLOOP_LOG_LEVEL": "Console logging level (default: INFO).",
    "TICKLOOP_LOG_DIR": "Directory for tickloop.log (default: empty => console only).",
    # Scheduler
    "TICKLOOP_QUEUES": "Comma/space separated queue names, in registration order "
    "(default: microtask task render).",
    "TICKLOOP_SELECTOR": "Queue-selection strategy: round_robin | priority (default: round_robin).",
    "TICKLOOP_IDLE_POLICY": "exit (batch host) | wait (interactive host) (default: exit).",
    "TICKLOOP_FAULT_POLICY": "log (log and continue) | raise (stop the run loop) (default: log).",
    # Chunked computations
    "TICKLOOP_SLICE_SIZE": "Candidates examined per slice (default: 500).",
    # Watchdog
    "TICKLOOP_WATCHDOG_THRESHOLD_SECONDS": "Report a task running longer than this (default: 5.0).",
    "TICKLOOP_WATCHDOG_POLL_SECONDS": "Watchdog polling interval (default: 0.5).",
}
