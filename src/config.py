# config.py

LOG_FILE                                = "../data/logs/log.log"
LOG_LEVEL                               = "INFO"    # Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_TO_CONSOLE                          = False     # Also attach a console handler to the root logger
DB_NAME                                 = "../data/chess_monitor.db"

LOGGER_VERBOSITY                        = 2         # OperationLogger verbosity, 0-3 (see utils.OperationLogger)
LOGGER_LOG_TO_DB                        = True      # Write failed/warning rows to log_details

# echecs.asso.fr (papi results pages)
ECHECS_BASE_URL                         = "https://www.echecs.asso.fr/"
ECHECS_REQUEST_TIMEOUT                  = 20        # Seconds before a fetch is considered a transport failure
ECHECS_USER_AGENT                       = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"

MONITOR_INTERVAL_SECONDS                = 120       # Seconds between two fetch cycles for the same tournament/round
MONITOR_RUN_FIRST_TICK_IMMEDIATELY      = True      # Run one cycle as soon as monitoring starts
