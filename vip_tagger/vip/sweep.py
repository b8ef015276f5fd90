# vip/sweep.py
"""
Full-catalog VIP sweep.

Pages through every customer, classifies each one, and keeps running totals.
One bad customer never stops the sweep; a failed page fetch does (there is no
cursor to continue from), and the error propagates to the caller.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .service import ClassificationResult, Outcome, VipClassifier

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    scanned: int = 0
    vip_total: int = 0
    newly_tagged: int = 0
    below_threshold: int = 0
    failed: int = 0
    pages: int = 0
    failed_ids: list = field(default_factory=list)
    elapsed: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, result: ClassificationResult):
        with self._lock:
            self.scanned += 1
            if result.is_vip:
                self.vip_total += 1
            if result.outcome == Outcome.NEWLY_TAGGED:
                self.newly_tagged += 1
            elif result.outcome == Outcome.BELOW_THRESHOLD:
                self.below_threshold += 1
            elif result.outcome == Outcome.FAILED:
                self.failed += 1
                self.failed_ids.append(result.as_dict())

    def as_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "vip_total": self.vip_total,
            "newly_tagged": self.newly_tagged,
            "below_threshold": self.below_threshold,
            "failed": self.failed,
            "pages": self.pages,
            "failed_ids": list(self.failed_ids),
            "elapsed": round(self.elapsed, 1),
        }


class VipSweep:

    def __init__(self, client, classifier: VipClassifier, workers: int = 1):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.client = client
        self.classifier = classifier
        self.workers = workers

    def _classify_one(self, report: SweepReport, customer_id, tags=None):
        try:
            result = self.classifier.classify(customer_id, tags=tags)
        except Exception as e:
            # classifier already converts API/data errors; this catches bugs so the sweep keeps going
            logger.exception(f"[VIP SWEEP] unexpected error for customer {customer_id}")
            result = ClassificationResult(str(customer_id), Outcome.FAILED, reason=f"{type(e).__name__}: {e}")
        report.record(result)
        return result

    def _run_batch(self, report: SweepReport, batch: list[tuple]):
        if self.workers == 1:
            for customer_id, tags in batch:
                self._classify_one(report, customer_id, tags)
            return
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self._classify_one, report, cid, tags) for cid, tags in batch]
            for f in futures:
                f.result()

    def run(self) -> SweepReport:
        logger.info(f"[VIP SWEEP] starting (threshold={self.classifier.threshold}, workers={self.workers})")
        report = SweepReport()
        t0 = time.time()
        cursor = None
        while True:
            customers, cursor = self.client.list_customers_page(cursor)
            report.pages += 1
            self._run_batch(report, [(c.id, c.tags) for c in customers])
            logger.info(f"[VIP SWEEP] page {report.pages} processed={len(customers)} total={report.scanned} failed={report.failed}")
            if not cursor:
                break
        report.elapsed = time.time() - t0
        self._log_summary(report)
        return report

    def run_for(self, customer_ids: Iterable) -> SweepReport:
        """Replay an explicit list of customers (fresh state for each)."""
        ids = list(dict.fromkeys(str(c) for c in customer_ids))
        logger.info(f"[VIP SWEEP] processing explicit list of {len(ids)} customer(s)")
        report = SweepReport(pages=0)
        t0 = time.time()
        self._run_batch(report, [(cid, None) for cid in ids])
        report.elapsed = time.time() - t0
        self._log_summary(report)
        return report

    @staticmethod
    def _log_summary(report: SweepReport):
        logger.info(
            f"[VIP SWEEP] DONE: {report.scanned} scanned, {report.vip_total} total VIP customers, "
            f"{report.newly_tagged} newly tagged, {report.failed} failed in {report.elapsed:.1f}s"
        )
        if report.failed_ids:
            logger.warning(f"[VIP SWEEP] failed (first 3): {[f['customer'] for f in report.failed_ids[:3]]}")
