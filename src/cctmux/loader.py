"""Background discovery of Claude instances, streamed to a single consumer.

Loading runs in two phases on a worker thread:

1. Fast: one pane inventory, one process snapshot, ancestry resolution and
   status detection. The complete instance list is sent as ``PanesReady``.
2. Slow: git enrichment per instance. Each result is sent as its own
   ``EnrichmentReady`` as soon as it finishes, followed by an
   ``EnrichmentProgress``.

Every message is stamped with the generation of the cycle that produced it.
Starting a new cycle bumps the generation, and ``poll()`` drops anything
older, so a superseded worker keeps running but its output is ignored.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from cctmux import process, tmux
from cctmux.ancestry import resolve_instances
from cctmux.config import Config
from cctmux.detection import detect_status
from cctmux.git import GitError, detect_git_context
from cctmux.models import (
    GIT_NOT_REPO,
    ClaudeInstance,
    GitResolved,
    GitState,
    Status,
)

logger = logging.getLogger(__name__)


# -- Messages --


@dataclass(frozen=True)
class PanesReady:
    generation: int
    instances: tuple[ClaudeInstance, ...]


@dataclass(frozen=True)
class EnrichmentReady:
    generation: int
    pane_id: str
    git: GitState


@dataclass(frozen=True)
class EnrichmentProgress:
    generation: int
    completed: int
    total: int


@dataclass(frozen=True)
class Failed:
    generation: int
    reason: str


LoaderMessage = PanesReady | EnrichmentReady | EnrichmentProgress | Failed


# -- Pipeline steps --


def discover_instances(config: Config) -> list[ClaudeInstance]:
    """Find every pane running the configured tool and classify it.

    Raises TmuxError or ProcessSnapshotError if either inventory fails. A
    pane whose content cannot be captured is reported with UNKNOWN status.
    """
    panes = tmux.list_all_panes()
    if not panes:
        return []
    processes = process.list_processes()

    instances: list[ClaudeInstance] = []
    for pane, proc in resolve_instances(
        processes, panes, config.process_name, config.max_ancestry_hops
    ):
        try:
            content = tmux.capture_pane(pane.pane_id, config.capture_lines, True)
            status = detect_status(content)
        except tmux.TmuxError as e:
            logger.debug("Capture failed for %s: %s", pane.pane_id, e)
            content = ""
            status = Status.UNKNOWN

        instances.append(
            ClaudeInstance(
                session_name=pane.session_name,
                session_attached=pane.session_attached,
                window_index=pane.window_index,
                window_name=pane.window_name,
                pane_id=pane.pane_id,
                pane_index=pane.pane_index,
                pid=proc.pid,
                working_directory=pane.current_path,
                status=status,
                preview=content,
            )
        )
    return instances


def enrich(path: str, timeout: float = 10.0) -> GitState:
    """Look up git information for ``path``.

    Never raises: a failed lookup is reported the same as "not a repository".
    """
    try:
        context = detect_git_context(path, timeout=timeout)
    except GitError as e:
        logger.debug("Git enrichment failed for %s: %s", path, e)
        return GIT_NOT_REPO
    if context is None:
        return GIT_NOT_REPO
    return GitResolved(context)


# -- Worker --


class ProgressiveLoader:
    """Runs discovery cycles off the consumer's thread.

    ``start()`` and ``poll()`` must be called from the consumer. The worker
    only ever puts immutable messages on the queue.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.generation = 0
        self._queue: queue.SimpleQueue[LoaderMessage] = queue.SimpleQueue()
        self._thread: threading.Thread | None = None

    def start(self) -> int:
        """Begin a new discovery cycle and return its generation.

        Does not wait for a previous cycle to finish.
        """
        self.generation += 1
        generation = self.generation
        self._thread = threading.Thread(
            target=self._run,
            args=(generation,),
            name=f"cctmux-loader-{generation}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Started discovery generation %d", generation)
        return generation

    def poll(self) -> list[LoaderMessage]:
        """Drain every queued message without blocking.

        Messages from superseded generations are discarded. The rest are
        returned in the order they were sent.
        """
        messages: list[LoaderMessage] = []
        while True:
            try:
                msg = self._queue.get_nowait()
            except queue.Empty:
                break
            if msg.generation != self.generation:
                logger.debug(
                    "Dropping %s from stale generation %d",
                    type(msg).__name__,
                    msg.generation,
                )
                continue
            messages.append(msg)
        return messages

    def _send(self, msg: LoaderMessage) -> None:
        self._queue.put(msg)

    def _run(self, generation: int) -> None:
        try:
            instances = discover_instances(self.config)
        except (tmux.TmuxError, process.ProcessSnapshotError) as e:
            logger.warning("Discovery failed: %s", e)
            self._send(Failed(generation, str(e)))
            return
        except Exception as e:
            logger.exception("Unexpected discovery failure")
            self._send(Failed(generation, f"Unexpected error: {e}"))
            return

        self._send(PanesReady(generation, tuple(instances)))
        self._enrich_all(generation, instances)

    def _enrich_all(self, generation: int, instances: list[ClaudeInstance]) -> None:
        total = len(instances)
        if total == 0:
            self._send(EnrichmentProgress(generation, 0, 0))
            return

        completed = 0
        timeout = self.config.git_timeout
        with ThreadPoolExecutor(
            max_workers=min(self.config.enrich_workers, total),
            thread_name_prefix=f"cctmux-git-{generation}",
        ) as pool:
            futures = {
                pool.submit(enrich, inst.working_directory, timeout): inst.pane_id
                for inst in instances
            }
            for future in as_completed(futures):
                pane_id = futures[future]
                try:
                    git_state = future.result()
                except Exception:
                    logger.exception("Git enrichment crashed for %s", pane_id)
                    git_state = GIT_NOT_REPO
                completed += 1
                self._send(EnrichmentReady(generation, pane_id, git_state))
                self._send(EnrichmentProgress(generation, completed, total))
