# layout_generation.py
"""
Randomized-restart layout generation.

Each restart shuffles the generation alphabet over the free positions,
builds a fresh cache and runs the optimizer to its local optimum.
Restarts share nothing but the read-only scoring context, so they are
spread over a process pool; every worker receives the scorer once
through the pool initializer.

Restart seeds are spawned from one numpy SeedSequence, so a given seed
always produces the same set of layouts regardless of process count.
"""

import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Iterable, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from keyboard import N_POSITIONS
from layout import Layout, shuffle_free_positions
from layout_cache import LayoutCache
from scoring import LayoutScorer
from search import OptimizationResult, Optimizer

# Set in each worker process by _init_worker
_worker_generator = None


class LayoutGenerator:
    """Generates optimized layouts from random starting points."""

    def __init__(self, scorer: LayoutScorer, characters: str,
                 pins: Iterable[int] = (), n_processes: Optional[int] = None,
                 show_progress: bool = False):
        """
        Args:
            scorer: Scorer built on the shared scoring context
            characters: The 30 characters to place
            pins: Positions that keep their character
            n_processes: Worker processes (default: all cores, at most 64); 1 runs in-process
            show_progress: Show a progress bar over restarts

        Raises:
            ValueError: On a wrong alphabet or out-of-range pins
        """
        if len(characters) != N_POSITIONS or len(set(characters)) != N_POSITIONS:
            raise ValueError(f"characters must be {N_POSITIONS} distinct symbols, got '{characters}'")

        self.scorer = scorer
        self.characters = characters
        self.symbols = scorer.context.converter.symbols_of(characters)
        self.optimizer = Optimizer(scorer, pins)
        self.pins = self.optimizer.pins
        self.n_processes = n_processes or min(mp.cpu_count(), 64)
        self.show_progress = show_progress

    def __getstate__(self):
        state = dict(self.__dict__)
        state['show_progress'] = False
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)

    @property
    def converter(self):
        return self.scorer.context.converter

    #-------------------------------------------------------------------------
    # Single restarts
    #-------------------------------------------------------------------------
    def _run(self, layout: Layout) -> Tuple[Layout, OptimizationResult]:
        cache = LayoutCache.build(self.scorer, layout)
        result = self.optimizer.optimize(layout, cache)
        return layout, result

    def generate_layout(self, seed=None) -> Layout:
        """Shuffle the alphabet over the free positions and optimize; pinned keys keep their symbol."""
        return self._generate(None, seed)[0]

    def generate_with_pins(self, based_on: Layout, seed=None) -> Layout:
        """Shuffle the free positions of based_on and optimize, keeping pins in place."""
        return self._generate(based_on, seed)[0]

    def _generate(self, based_on: Optional[Layout], seed) -> Tuple[Layout, OptimizationResult]:
        rng = np.random.default_rng(seed)
        if based_on is None:
            layout = Layout(self.symbols)
            shuffle_free_positions(layout, self.pins, rng)
        else:
            layout = Layout.random_pins(based_on, self.pins, rng)
        return self._run(layout)

    def improve(self, layout: Layout) -> Tuple[Layout, OptimizationResult]:
        """Optimize a copy of an existing layout without shuffling it."""
        return self._run(layout.copy())

    #-------------------------------------------------------------------------
    # Batches
    #-------------------------------------------------------------------------
    def generate_n(self, amount: int, seed=None) -> List[Layout]:
        """Run `amount` independent restarts; layouts ranked best first."""
        return self._generate_batch(None, amount, seed)

    def generate_n_with_pins(self, based_on: Layout, amount: int, seed=None) -> List[Layout]:
        """Like generate_n, but every restart starts from based_on with its pins kept."""
        return self._generate_batch(based_on, amount, seed)

    def _generate_batch(self, based_on: Optional[Layout], amount: int, seed) -> List[Layout]:
        if amount <= 0:
            return []

        seeds = np.random.SeedSequence(seed).spawn(amount)
        tasks = [(based_on, s) for s in seeds]
        layouts = []

        progress = tqdm(total=amount, desc="Generating", unit=" layouts", disable=not self.show_progress)
        with progress:
            if self.n_processes == 1 or amount == 1:
                for task in tasks:
                    layouts.append(self._generate(*task)[0])
                    progress.update(1)
            else:
                workers = min(self.n_processes, amount)
                with ProcessPoolExecutor(max_workers=workers, initializer=_init_worker,
                                         initargs=(self,)) as executor:
                    futures = [executor.submit(_generate_worker, task) for task in tasks]
                    for future in as_completed(futures):
                        matrix, score = future.result()
                        layouts.append(Layout(matrix, score))
                        progress.update(1)

        return rank_layouts(layouts)


def rank_layouts(layouts: List[Layout]) -> List[Layout]:
    """Sort by descending score; equal scores are ordered by their symbols."""
    return sorted(layouts, key=lambda layout: (-layout.score, layout.matrix.tolist()))


def _init_worker(generator: LayoutGenerator) -> None:
    global _worker_generator
    _worker_generator = generator


def _generate_worker(task) -> Tuple[np.ndarray, float]:
    based_on, seed = task
    layout, _ = _worker_generator._generate(based_on, seed)
    return layout.matrix, layout.score
