import uuid
from datetime import date
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_database_operation
from ..core.exceptions import PersistenceError
from ..models.performance import AppliedActivityEvent, DailyPerformanceStat, DAY_PERIOD
from .base import CRUDBase

logger = get_logger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PerformanceRepository(CRUDBase[DailyPerformanceStat, Any, Any]):
    """
    Daily performance rows. Increments go through a single
    INSERT ... ON CONFLICT DO UPDATE so concurrent completions for the same
    staff and day never lose each other's deltas.
    """

    def __init__(self):
        super().__init__(DailyPerformanceStat)

    @staticmethod
    def _insert_for(db: Session):
        dialect = db.get_bind().dialect.name
        if dialect not in _DIALECT_INSERTS:
            logger.error(f"No upsert construct for dialect '{dialect}'")
            raise PersistenceError(f"performance stats upsert on {dialect}")
        return _DIALECT_INSERTS[dialect]

    def get_daily(self, db: Session, staff_id: int, stat_date: date) -> Optional[DailyPerformanceStat]:
        return (
            db.query(self.model)
            .filter(and_(
                self.model.staff_id == staff_id,
                self.model.date == stat_date,
                self.model.period == DAY_PERIOD
            ))
            .first()
        )

    def get_range(
        self,
        db: Session,
        start_date: date,
        end_date: date,
        staff_id: Optional[int] = None
    ) -> List[DailyPerformanceStat]:
        """Daily rows with date in [start_date, end_date], oldest first"""
        query = db.query(self.model).filter(and_(
            self.model.period == DAY_PERIOD,
            self.model.date >= start_date,
            self.model.date <= end_date
        ))
        if staff_id is not None:
            query = query.filter(self.model.staff_id == staff_id)
        rows = query.order_by(self.model.date, self.model.staff_id).all()
        log_database_operation("select_range", self.model.__tablename__, row_count=len(rows))
        return rows

    def claim_event(self, db: Session, *, event_key: str, staff_id: int, stat_date: date) -> bool:
        """
        Record ``event_key`` in the ledger within the current transaction.
        Returns False when the event has already been applied.
        """
        insert = self._insert_for(db)
        stmt = (
            insert(AppliedActivityEvent)
            .values(
                uuid=str(uuid.uuid4()),
                event_key=event_key,
                staff_id=staff_id,
                stat_date=stat_date,
            )
            .on_conflict_do_nothing(index_elements=["event_key"])
        )
        return db.execute(stmt).rowcount == 1

    def increment_daily(
        self,
        db: Session,
        *,
        staff_id: int,
        stat_date: date,
        drive_time: int,
        miles: float,
        visit_time: int,
        visits: int,
        cost_per_mile: float
    ) -> DailyPerformanceStat:
        """
        Atomically add the deltas to the (staff, date) row, creating it when
        missing, then recompute the derived columns while the row is locked.
        The caller owns the transaction.
        """
        table = self.model
        insert = self._insert_for(db)
        stmt = insert(table).values(
            uuid=str(uuid.uuid4()),
            staff_id=staff_id,
            date=stat_date,
            period=DAY_PERIOD,
            total_drive_time=drive_time,
            total_visits=visits,
            total_miles=miles,
            total_visit_time=visit_time,
            total_cost=0.0,
            cost_per_mile=cost_per_mile,
            avg_visit_duration=0.0,
            efficiency_score=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["staff_id", "date", "period"],
            set_={
                "total_drive_time": table.total_drive_time + stmt.excluded.total_drive_time,
                "total_visits": table.total_visits + stmt.excluded.total_visits,
                "total_miles": table.total_miles + stmt.excluded.total_miles,
                "total_visit_time": table.total_visit_time + stmt.excluded.total_visit_time,
                "cost_per_mile": stmt.excluded.cost_per_mile,
                "updated_at": func.now(),
            },
        )
        db.execute(stmt)

        row = (
            db.query(table)
            .filter(and_(
                table.staff_id == staff_id,
                table.date == stat_date,
                table.period == DAY_PERIOD
            ))
            .populate_existing()
            .with_for_update()
            .one()
        )
        row.recompute_derived(cost_per_mile)
        db.flush()
        log_database_operation("upsert", table.__tablename__, row_count=1)
        return row

    def apply_activity(
        self,
        db: Session,
        *,
        staff_id: int,
        stat_date: date,
        drive_time: int,
        miles: float,
        visit_time: int,
        visits: int,
        cost_per_mile: float,
        event_key: Optional[str] = None
    ) -> Tuple[Optional[DailyPerformanceStat], bool]:
        """
        Fold one completion event into the daily row in a single transaction.
        Returns the row and whether the deltas were applied; a replayed
        ``event_key`` leaves the row untouched.
        """
        if event_key and not self.claim_event(db, event_key=event_key, staff_id=staff_id, stat_date=stat_date):
            db.rollback()
            logger.warning(f"Activity event {event_key} already applied; skipping", extra={"staff_id": staff_id})
            return self.get_daily(db, staff_id, stat_date), False

        row = self.increment_daily(
            db,
            staff_id=staff_id,
            stat_date=stat_date,
            drive_time=drive_time,
            miles=miles,
            visit_time=visit_time,
            visits=visits,
            cost_per_mile=cost_per_mile,
        )
        db.commit()
        db.refresh(row)
        return row, True


performance_repository = PerformanceRepository()
