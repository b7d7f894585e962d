import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ResultReporter:
    """Forward final reports to a persistence callable ``save(report) -> id``.

    Saving is best effort: errors are logged and reported as ``None`` so the
    game never stalls on storage.
    """

    def __init__(self, save: Callable[[dict], Optional[int]]):
        self._save = save

    def report(self, report: dict) -> Optional[int]:
        try:
            result_id = self._save(report)
        except Exception:
            logger.exception("[result-error] difficulty=%s outcome=%s", report.get('difficulty'), report.get('outcome'))
            return None
        if result_id is None:
            logger.warning("[result-error] difficulty=%s outcome=%s not saved", report.get('difficulty'), report.get('outcome'))
        else:
            logger.info("[result] id=%s difficulty=%s outcome=%s", result_id, report.get('difficulty'), report.get('outcome'))
        return result_id
