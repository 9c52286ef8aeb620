"""Default corpus of "normal" server log lines used to seed the baseline."""

DEFAULT_NORMAL_LOGS = [
    "INFO: User 'admin' logged in successfully from IP 192.168.1.10",
    "INFO: Service 'database-connector' started successfully on port 5432",
    "DEBUG: Cache cleared for user session 'user123'",
    "INFO: GET /api/v1/users request processed in 25ms",
    "INFO: Scheduled backup job 'daily-backup' completed successfully.",
]
