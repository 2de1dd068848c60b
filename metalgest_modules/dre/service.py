"""
DRE Module Service (``metalgest_modules.dre.service``).

Responsibility
--------------
Serves DRE reports, period comparatives and historical series for a
company by bridging the ``TransactionSelector`` to the pure functions in
``statements.py`` and ``comparison.py``.  Results are kept in an injected
``TTLCache`` so repeated screen loads within the TTL do not re-query.

Architecture position
---------------------
**Modules layer** -- thin ERP glue.  Constructor: ``session`` + ``clock``
+ ``config`` + ``cache``.  No financial logic lives in this class.

Invariants enforced
-------------------
* Read-only -- no writes to the transactions table.
* Each call loads exactly the date window it reports on (half-open).
* Cached values are immutable report objects.

Failure modes
-------------
* Selector query failure -> exception propagates.
* Malformed stored rows -> ``ValidationError`` from the DTO conversion.
* Bad granularity or period count -> ``InvalidPeriodError``.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from metalgest_kernel.domain.clock import Clock, SystemClock
from metalgest_kernel.logging_config import LogContext, get_logger
from metalgest_kernel.selectors.transaction_selector import TransactionSelector
from metalgest_kernel.utils.cache import TTLCache
from metalgest_modules.dre.comparison import build_comparative, build_series
from metalgest_modules.dre.config import DREConfig
from metalgest_modules.dre.models import (
    Comparative,
    DREReport,
    PeriodGranularity,
    ReportMetadata,
    StatementSeries,
)
from metalgest_modules.dre.periods import (
    period_containing,
    previous_period,
    trailing_periods,
)
from metalgest_modules.dre.statements import build_report

logger = get_logger("modules.dre.service")


class DREService:
    """
    DRE generation service.

    Contract
    --------
    * ``get_report`` / ``get_comparative`` / ``get_historical`` return the
      typed value objects of ``metalgest_modules.dre.models``.
    * ``anchor`` / ``end`` default to the clock's current date.

    Non-goals
    ---------
    * Does NOT write transactions.
    * Does NOT render PDFs; see ``metalgest_modules.dre.export``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: DREConfig | None = None,
        cache: TTLCache | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or DREConfig.with_defaults()
        self._cache = cache if cache is not None else TTLCache(
            self._config.cache_ttl_seconds, self._clock
        )
        self._transactions = TransactionSelector(session)

        logger.info(
            "dre_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "currency": self._config.currency,
                "cache_ttl_seconds": self._cache.ttl_seconds,
            },
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _anchor(self, anchor: date | datetime | None) -> date:
        if anchor is None:
            return self._clock.today()
        return anchor.date() if isinstance(anchor, datetime) else anchor

    def _cached(self, key: tuple):
        value = self._cache.get(key)
        if value is not None:
            logger.debug("dre_cache_hit", extra={"cache_key": repr(key)})
        return value

    # =========================================================================
    # Public API
    # =========================================================================

    def get_report(
        self,
        granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
        anchor: date | datetime | None = None,
        company_id: UUID | None = None,
    ) -> DREReport:
        """
        DRE for the period containing ``anchor``.

        Args:
            granularity: month, quarter or year.
            anchor: Any date inside the period (default: today).
            company_id: Restrict to one company; None reports on all rows.
        """
        period = period_containing(self._anchor(anchor), granularity)
        key = ("report", company_id, period.granularity.value, period.start)
        cached = self._cached(key)
        if cached is not None:
            return cached

        with LogContext.bind(company_id=company_id):
            transactions = self._transactions.between(
                period.start, period.end, company_id
            )
            metadata = ReportMetadata(
                entity_name=self._config.entity_name,
                currency=self._config.currency,
                generated_at=self._clock.now().isoformat(),
                period=period,
                transaction_count=len(transactions),
            )
            report = build_report(transactions, self._config, metadata)

        self._cache.set(key, report)
        return report

    def get_comparative(
        self,
        granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
        anchor: date | datetime | None = None,
        company_id: UUID | None = None,
    ) -> Comparative:
        """Period containing ``anchor`` against the preceding period."""
        period = period_containing(self._anchor(anchor), granularity)
        key = ("comparative", company_id, period.granularity.value, period.start)
        cached = self._cached(key)
        if cached is not None:
            return cached

        prior = previous_period(period)
        with LogContext.bind(company_id=company_id):
            transactions = self._transactions.between(
                prior.start, period.end, company_id
            )
            comparative = build_comparative(
                transactions,
                anchor=period.start,
                granularity=period.granularity,
                config=self._config,
            )

        self._cache.set(key, comparative)
        return comparative

    def get_historical(
        self,
        periods: int | None = None,
        end: date | datetime | None = None,
        company_id: UUID | None = None,
        granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
    ) -> StatementSeries:
        """
        Statements for the ``periods`` periods ending with the one
        containing ``end`` (default: today), oldest first.
        """
        count = self._config.series_periods if periods is None else periods
        anchor = self._anchor(end)
        window = trailing_periods(anchor, count, granularity)
        key = ("historical", company_id, window[0].granularity.value, window[0].start, count)
        cached = self._cached(key)
        if cached is not None:
            return cached

        with LogContext.bind(company_id=company_id):
            transactions = self._transactions.between(
                window[0].start, window[-1].end, company_id
            )
            series = build_series(
                transactions,
                periods=count,
                end=anchor,
                granularity=window[0].granularity,
                config=self._config,
            )

        self._cache.set(key, series)
        return series

    def invalidate(self, company_id: UUID | None = None) -> int:
        """
        Drop cached results.  With ``company_id``, only that company's.

        Returns the number of entries removed.
        """
        if company_id is None:
            removed = len(self._cache)
            self._cache.clear()
        else:
            removed = sum(
                self._cache.evict(key)
                for key in self._cache.keys()
                if isinstance(key, tuple) and len(key) > 1 and key[1] == company_id
            )
        logger.info(
            "dre_cache_invalidated",
            extra={"company_id": company_id, "entries_removed": removed},
        )
        return removed
