# =============================================================================
# FILE: powerindex/modules/runner.py
"""
Batch Runner - Computes power indices for many independent voting games

Features:
- Parallel execution across games with ProcessPoolExecutor
- Progress tracking with tqdm
- Per-game failure isolation (one bad game never stops the batch)
- Tidy pandas output: one row per (game, member)

Priority: HIGH | Status: Production-Ready
Version: 1.0.0
"""
import pandas as pd
from typing import Dict, Hashable, List, Mapping, Optional, Tuple
from dataclasses import asdict
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from tqdm import tqdm

from .game import PowerIndexReport, WeightedVotingGame
from .power_index import PowerIndexEngine
from ..utils.config import EngineConfig
from ..utils.logging_utils import ComputationLogger

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    'game_id', 'member_id', 'index', 'method',
    'n_members', 'threshold', 'n_samples_used', 'aborted'
]


class BatchRunner:
    """
    Runs the power index engine over a mapping of independent games

    Games share no state, so each one may run in its own process; within a
    game the engine's own `workers` setting still applies.
    """

    def __init__(self, config: Optional[EngineConfig] = None, show_progress: bool = True):
        self.config = config or EngineConfig()
        self.show_progress = show_progress
        self.reports: Dict[Hashable, PowerIndexReport] = {}
        self.failures: Dict[Hashable, str] = {}

    def run_single_game(
        self,
        game_id: Hashable,
        game: WeightedVotingGame,
        method: str = 'auto'
    ) -> Tuple[Hashable, PowerIndexReport]:
        """Compute one game with a fresh engine"""
        engine = PowerIndexEngine(self.config)
        return game_id, engine.compute(game, method=method)

    def run_games(
        self,
        games: Mapping[Hashable, WeightedVotingGame],
        method: str = 'auto',
        parallel_workers: int = 1
    ) -> pd.DataFrame:
        """
        Compute every game and collect a tidy result table

        Parameters:
        -----------
        games : mapping of game_id -> WeightedVotingGame
        method : str
            Passed to PowerIndexEngine.compute
        parallel_workers : int
            Number of processes across games (1 = serial)

        Returns:
        --------
        DataFrame with RESULT_COLUMNS, one row per member of every
        successful game. Failed games are listed in `self.failures`.
        """
        batch_logger = ComputationLogger(config=asdict(self.config))
        batch_logger.log_batch_start(len(games))

        self.reports = {}
        self.failures = {}

        if parallel_workers > 1:
            with ProcessPoolExecutor(max_workers=parallel_workers) as executor:
                futures = {
                    executor.submit(self.run_single_game, game_id, game, method): game_id
                    for game_id, game in games.items()
                }

                with tqdm(total=len(futures), desc="Power Index Progress",
                          disable=not self.show_progress) as pbar:
                    for future in as_completed(futures):
                        game_id = futures[future]
                        try:
                            _, report = future.result()
                            self.reports[game_id] = report
                        except Exception as e:
                            logger.error(f"Game {game_id!r} failed: {e}", exc_info=True)
                            self.failures[game_id] = f"{type(e).__name__}: {e}"
                        pbar.update(1)
        else:
            for game_id, game in tqdm(games.items(), desc="Power Index Progress",
                                      disable=not self.show_progress):
                try:
                    _, report = self.run_single_game(game_id, game, method)
                    self.reports[game_id] = report
                except Exception as e:
                    logger.error(f"Game {game_id!r} failed: {e}", exc_info=True)
                    self.failures[game_id] = f"{type(e).__name__}: {e}"

        batch_logger.log_milestone(f"{len(self.reports)} games computed")
        df = self._to_frame(games)

        batch_logger.log_batch_end({
            'succeeded': len(self.reports),
            'failed': len(self.failures),
            'aborted': sum(1 for r in self.reports.values() if r.aborted),
        })
        return df

    def _to_frame(self, games: Mapping[Hashable, WeightedVotingGame]) -> pd.DataFrame:
        """Flatten reports in the input order of `games`"""
        rows: List[Dict] = []
        for game_id in games:
            report = self.reports.get(game_id)
            if report is None:
                continue
            for result in report.results:
                rows.append({
                    'game_id': game_id,
                    'member_id': result.member_id,
                    'index': result.index,
                    'method': report.method,
                    'n_members': report.metadata.get('n_members'),
                    'threshold': report.metadata.get('threshold'),
                    'n_samples_used': report.n_samples_used,
                    'aborted': report.aborted,
                })
        return pd.DataFrame(rows, columns=RESULT_COLUMNS)
