"""
Logger with batch tracking for power index runs
"""
import logging
from datetime import datetime
from typing import Dict, Any, Optional


class ComputationLogger:
    """
    Logger that brackets a batch of power index computations
    """

    def __init__(self, name: str = "powerindex.batch", config: Optional[Dict[str, Any]] = None):
        """
        Initialize the computation logger

        Args:
            name: Logger name
            config: Optional engine configuration echoed at batch start
        """
        self.logger = logging.getLogger(name)
        self.config = config or {}
        self.start_time = None

    def log_batch_start(self, n_games: int) -> None:
        """
        Log the start of a batch

        Args:
            n_games: Number of voting games in the batch
        """
        self.start_time = datetime.now()
        self.logger.info("=" * 80)
        self.logger.info("POWER INDEX BATCH START")
        self.logger.info(f"Time: {self.start_time.isoformat()}")
        self.logger.info(f"Games: {n_games}")
        self.logger.info(f"Config: {self.config}")
        self.logger.info("=" * 80)

    def log_batch_end(self, summary: Dict[str, Any]) -> None:
        """
        Log the end of a batch

        Args:
            summary: Counts of succeeded / failed / aborted games
        """
        end_time = datetime.now()
        duration = end_time - self.start_time if self.start_time else None

        self.logger.info("POWER INDEX BATCH END")
        self.logger.info(f"Duration: {duration}")
        self.logger.info(f"Results: {summary}")
        self.logger.info("=" * 80)

    def log_milestone(self, message: str) -> None:
        """Log a significant step within the batch"""
        self.logger.info(f"checkpoint: {message}")
