"""
Clinical Quality Service

Assembles the clinical quality dashboard from episode outcomes and clinician
performance snapshots, and provides the reads and writes behind the quality
endpoints.

Aggregation is done with pandas:
- outcome trends: episodes grouped by the month they started (last 6 months)
- clinic benchmarks: episodes grouped by clinic, compared with the network mean
- clinician performance: snapshots grouped by clinician, anonymized as
  "Clinician A", "Clinician B", ... in descending improvement order

An episode counts as an excellent outcome when its improvement is at least
75%. Quality indicators, industry benchmarks and the 30-day readmission rate
are reference data.

Like the other dashboards, a failed fetch or an empty clinical_outcomes table
serves the mock payload (logged at WARNING) instead of raising.
"""

import asyncio
import calendar
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from aimos.core.exceptions import FetchError
from aimos.core.store import RawRecord, RowStore
from aimos.models.enums import DataSource, OutcomeStatus
from aimos.models.schemas import (
    ClinicalOutcomeCreate,
    ClinicalOutcomeUpdate,
    ClinicBenchmark,
    ClinicianPerformance,
    OutcomeTrend,
    QualityDashboard,
    QualityOverview,
)
from aimos.services.metrics import classify_performance_tier, clinician_label, to_date
from aimos.services.mock_data import (
    READMISSION_RATE_30D,
    industry_benchmarks,
    mock_quality_dashboard,
    quality_indicators,
)
from aimos.sql.row_queries import Filter


logger = logging.getLogger(__name__)


# =============================================================================
# Module Constants
# =============================================================================

EXCELLENT_IMPROVEMENT_PCT: float = 75.0
TREND_MONTHS: int = 6

_OUTCOME_COLUMNS = (
    'clinic_id', 'clinician_id', 'improvement_percentage', 'outcome_status',
    'episode_start_date', 'created_at',
)
_SNAPSHOT_COLUMNS = (
    'clinic_id', 'clinician_id', 'period_start', 'total_episodes',
    'avg_improvement_percentage', 'patient_satisfaction_avg',
)


# =============================================================================
# Dashboard Assembly
# =============================================================================


async def load_quality_dashboard(
    store: RowStore,
    now: Optional[datetime] = None,
) -> QualityDashboard:
    """
    Load the clinical quality dashboard, falling back to mock data.

    Args:
        store: Row store to read from.
        now: Timestamp stamped on the payload; defaults to now (UTC).

    Returns:
        QualityDashboard with data_source "live", or the mock payload when the
        fetch failed, there are no outcomes or the rows failed validation.
    """
    now = now or datetime.now(timezone.utc)

    try:
        outcomes, snapshots, clinics = await asyncio.gather(
            get_clinical_outcomes(store),
            get_clinician_performance(store),
            store.fetch_rows('clinics', order_by=['name']),
        )
    except FetchError as e:
        logger.warning(f"Quality dashboard fetch failed, serving mock data: {e}")
        return mock_quality_dashboard()

    if not outcomes:
        logger.warning("Quality dashboard has no clinical outcomes, serving mock data")
        return mock_quality_dashboard()

    try:
        return assemble_quality_dashboard(outcomes, snapshots, clinics, now)
    except ValidationError as e:
        logger.warning(f"Quality rows failed validation, serving mock data: {e}")
        return mock_quality_dashboard()


def assemble_quality_dashboard(
    outcomes: Sequence[RawRecord],
    snapshots: Sequence[RawRecord],
    clinics: Sequence[RawRecord],
    now: datetime,
) -> QualityDashboard:
    """
    Compute the live quality dashboard from fetched rows. Pure; performs no I/O.

    Args:
        outcomes: clinical_outcomes rows.
        snapshots: clinician_performance_snapshots rows.
        clinics: clinics rows, used only to name clinic benchmarks.
        now: Timestamp stamped on the payload.
    """
    outcome_df = _outcome_frame(outcomes)
    snapshot_df = _snapshot_frame(snapshots)
    clinic_names = {clinic.get('id'): clinic.get('name') for clinic in clinics}

    logger.info(
        f"Assembling quality dashboard: {len(outcome_df)} outcomes, "
        f"{len(snapshot_df)} performance snapshots"
    )

    return QualityDashboard(
        data_source=DataSource.LIVE,
        generated_at=now,
        overview=calculate_quality_overview(outcome_df, snapshot_df),
        outcome_trends=calculate_outcome_trends(outcome_df, snapshot_df),
        clinic_benchmarks=calculate_clinic_benchmarks(outcome_df, snapshot_df, clinic_names),
        clinician_performance=calculate_clinician_performance(outcome_df, snapshot_df),
        quality_indicators=quality_indicators(),
        industry_benchmarks=industry_benchmarks(),
    )


def _frame(rows: Sequence[RawRecord], columns: Sequence[str]) -> pd.DataFrame:
    df = pd.DataFrame.from_records(list(rows))
    for column in columns:
        if column not in df.columns:
            df[column] = None
    return df


def _outcome_frame(outcomes: Sequence[RawRecord]) -> pd.DataFrame:
    """
    Outcomes as a DataFrame with the derived columns every aggregation uses:

    - improvement: numeric improvement_percentage (NaN when missing)
    - scored / excellent / completed: per-episode flags
    - period: YYYY-MM of episode_start_date, falling back to created_at
    """
    df = _frame(outcomes, _OUTCOME_COLUMNS)

    df['improvement'] = pd.to_numeric(df['improvement_percentage'], errors='coerce')
    df['scored'] = df['improvement'].notna()
    df['excellent'] = df['improvement'] >= EXCELLENT_IMPROVEMENT_PCT
    df['completed'] = df['outcome_status'] == OutcomeStatus.COMPLETED.value

    periods = []
    for started, created in zip(df['episode_start_date'], df['created_at']):
        day = to_date(started) or to_date(created)
        periods.append(day.strftime('%Y-%m') if day else None)
    df['period'] = periods

    return df


def _snapshot_frame(snapshots: Sequence[RawRecord]) -> pd.DataFrame:
    df = _frame(snapshots, _SNAPSHOT_COLUMNS)

    df['episodes'] = pd.to_numeric(df['total_episodes'], errors='coerce').fillna(0)
    df['improvement'] = pd.to_numeric(df['avg_improvement_percentage'], errors='coerce')
    df['satisfaction'] = pd.to_numeric(df['patient_satisfaction_avg'], errors='coerce')
    df['period'] = [
        day.strftime('%Y-%m') if day else None
        for day in (to_date(value) for value in df['period_start'])
    ]

    return df


def _mean(series: pd.Series) -> float:
    """Mean ignoring missing values; 0.0 when nothing is left."""
    value = series.mean()
    return 0.0 if pd.isna(value) else float(value)


def _vs_reference(value: float, reference: float) -> float:
    return (value - reference) / reference * 100 if reference > 0 else 0.0


def calculate_quality_overview(
    outcome_df: pd.DataFrame,
    snapshot_df: pd.DataFrame,
) -> QualityOverview:
    """Headline counts and averages across every outcome."""
    scored = int(outcome_df['scored'].sum())
    excellent = int(outcome_df['excellent'].sum())

    clinician_ids = snapshot_df['clinician_id'].dropna()
    if clinician_ids.empty:
        clinician_ids = outcome_df['clinician_id'].dropna()

    return QualityOverview(
        total_episodes=len(outcome_df),
        completed_episodes=int(outcome_df['completed'].sum()),
        active_episodes=int((outcome_df['outcome_status'] == OutcomeStatus.ACTIVE.value).sum()),
        avg_improvement=_mean(outcome_df['improvement']),
        patient_satisfaction_avg=_mean(snapshot_df['satisfaction']),
        clinician_count=int(clinician_ids.nunique()),
        excellent_outcomes_pct=excellent / scored * 100 if scored else 0.0,
        readmission_rate=READMISSION_RATE_30D,
    )


def calculate_outcome_trends(
    outcome_df: pd.DataFrame,
    snapshot_df: pd.DataFrame,
) -> List[OutcomeTrend]:
    """
    Monthly outcome trend for the most recent TREND_MONTHS months with episodes.

    Satisfaction comes from the performance snapshots of the same month; a
    month without snapshots uses the overall snapshot mean.
    """
    dated = outcome_df.dropna(subset=['period'])
    if dated.empty:
        return []

    monthly = (
        dated.groupby('period')
        .agg(
            total_episodes=('outcome_status', 'size'),
            avg_improvement=('improvement', 'mean'),
            completed=('completed', 'sum'),
            excellent=('excellent', 'sum'),
        )
        .sort_index()
        .tail(TREND_MONTHS)
    )

    satisfaction_by_month = (
        snapshot_df.dropna(subset=['period']).groupby('period')['satisfaction'].mean()
    )
    default_satisfaction = _mean(snapshot_df['satisfaction'])

    trends = []
    for period, row in monthly.iterrows():
        satisfaction = satisfaction_by_month.get(period)
        if satisfaction is None or pd.isna(satisfaction):
            satisfaction = default_satisfaction

        total = int(row['total_episodes'])
        trends.append(OutcomeTrend(
            period=period,
            month=calendar.month_abbr[int(period[5:7])],
            total_episodes=total,
            avg_improvement=0.0 if pd.isna(row['avg_improvement']) else float(row['avg_improvement']),
            patient_satisfaction=float(satisfaction),
            completion_rate=int(row['completed']) / total * 100 if total else 0.0,
            excellent_outcomes=int(row['excellent']),
        ))

    return trends


def calculate_clinic_benchmarks(
    outcome_df: pd.DataFrame,
    snapshot_df: pd.DataFrame,
    clinic_names: Dict[str, Optional[str]],
) -> List[ClinicBenchmark]:
    """
    Per-clinic benchmarks ranked by mean improvement (rank 1 is best).

    vs_network_avg is the percentage difference from the mean of the clinic
    means, and the tier follows from it.
    """
    by_clinic = (
        outcome_df.dropna(subset=['clinic_id'])
        .groupby('clinic_id')
        .agg(
            total_episodes=('outcome_status', 'size'),
            avg_improvement=('improvement', 'mean'),
            completed=('completed', 'sum'),
            excellent=('excellent', 'sum'),
            scored=('scored', 'sum'),
        )
    )
    if by_clinic.empty:
        return []

    by_clinic['avg_improvement'] = by_clinic['avg_improvement'].fillna(0)
    by_clinic = by_clinic.sort_values('avg_improvement', ascending=False, kind='stable')

    satisfaction_by_clinic = (
        snapshot_df.dropna(subset=['clinic_id']).groupby('clinic_id')['satisfaction'].mean()
    )
    network_avg = float(by_clinic['avg_improvement'].mean())

    benchmarks = []
    for rank, (clinic_id, row) in enumerate(by_clinic.iterrows(), start=1):
        satisfaction = satisfaction_by_clinic.get(clinic_id)
        vs_network = _vs_reference(float(row['avg_improvement']), network_avg)
        total = int(row['total_episodes'])
        scored = int(row['scored'])

        benchmarks.append(ClinicBenchmark(
            clinic_id=str(clinic_id),
            clinic_name=clinic_names.get(clinic_id) or str(clinic_id),
            total_episodes=total,
            avg_improvement=float(row['avg_improvement']),
            patient_satisfaction=0.0 if satisfaction is None or pd.isna(satisfaction) else float(satisfaction),
            completion_rate=int(row['completed']) / total * 100 if total else 0.0,
            excellent_outcomes_pct=int(row['excellent']) / scored * 100 if scored else 0.0,
            vs_network_avg=vs_network,
            rank=rank,
            total_clinics=len(by_clinic),
            performance_tier=classify_performance_tier(vs_network),
        ))

    return benchmarks


def calculate_clinician_performance(
    outcome_df: pd.DataFrame,
    snapshot_df: pd.DataFrame,
) -> List[ClinicianPerformance]:
    """
    Anonymized per-clinician performance, best mean improvement first.

    Episode counts, improvement and satisfaction come from the performance
    snapshots; completion rate and excellent share come from the clinician's
    outcomes. Clinicians without snapshots are not listed.
    """
    by_clinician = (
        snapshot_df.dropna(subset=['clinician_id'])
        .groupby('clinician_id')
        .agg(
            total_episodes=('episodes', 'sum'),
            avg_improvement=('improvement', 'mean'),
            patient_satisfaction=('satisfaction', 'mean'),
        )
    )
    if by_clinician.empty:
        return []

    by_clinician = by_clinician.fillna(0)
    outcome_stats = (
        outcome_df.dropna(subset=['clinician_id'])
        .groupby('clinician_id')
        .agg(
            episodes=('outcome_status', 'size'),
            completed=('completed', 'sum'),
            excellent=('excellent', 'sum'),
            scored=('scored', 'sum'),
        )
    )

    clinician_avg = float(by_clinician['avg_improvement'].mean())
    by_clinician = by_clinician.sort_values('avg_improvement', ascending=False, kind='stable')

    performance = []
    for index, (clinician_id, row) in enumerate(by_clinician.iterrows()):
        completion_rate = 0.0
        excellent_pct = 0.0
        if clinician_id in outcome_stats.index:
            stats = outcome_stats.loc[clinician_id]
            if stats['episodes'] > 0:
                completion_rate = int(stats['completed']) / int(stats['episodes']) * 100
            if stats['scored'] > 0:
                excellent_pct = int(stats['excellent']) / int(stats['scored']) * 100

        vs_avg = _vs_reference(float(row['avg_improvement']), clinician_avg)
        performance.append(ClinicianPerformance(
            clinician_id=str(clinician_id),
            clinician_label=clinician_label(index),
            total_episodes=int(row['total_episodes']),
            avg_improvement=float(row['avg_improvement']),
            patient_satisfaction=float(row['patient_satisfaction']),
            completion_rate=completion_rate,
            excellent_outcomes_pct=excellent_pct,
            vs_avg=vs_avg,
            performance_tier=classify_performance_tier(vs_avg),
        ))

    return performance


# =============================================================================
# Reads
# =============================================================================


async def get_clinical_outcomes(store: RowStore, clinic_id: Optional[str] = None) -> List[RawRecord]:
    """Clinical outcomes, newest first, optionally for one clinic."""
    filters = [Filter('clinic_id', 'eq', clinic_id)] if clinic_id else []
    return await store.fetch_rows('clinical_outcomes', filters=filters, order_by=['-created_at'])


async def get_clinician_performance(store: RowStore, clinic_id: Optional[str] = None) -> List[RawRecord]:
    """Clinician performance snapshots, newest period first, optionally for one clinic."""
    filters = [Filter('clinic_id', 'eq', clinic_id)] if clinic_id else []
    return await store.fetch_rows(
        'clinician_performance_snapshots', filters=filters, order_by=['-period_start']
    )


async def get_outcome_metrics(store: RowStore) -> List[RawRecord]:
    """Outcome metric definitions, alphabetical."""
    return await store.fetch_rows('outcome_metrics', order_by=['name'])


# =============================================================================
# Writes
# =============================================================================


async def create_clinical_outcome(store: RowStore, outcome: ClinicalOutcomeCreate) -> RawRecord:
    """Insert a clinical outcome and return the stored row."""
    row = await store.insert_row('clinical_outcomes', outcome.model_dump())
    logger.info(f"Created clinical outcome {row.get('id')} for clinic {outcome.clinic_id}")
    return row


async def update_clinical_outcome(
    store: RowStore,
    outcome_id: str,
    updates: ClinicalOutcomeUpdate,
) -> RawRecord:
    """
    Apply the fields set on ``updates`` to one clinical outcome.

    Raises:
        ValueError: If no field was set.
        RecordNotFoundError: If the outcome does not exist.
    """
    patch = updates.model_dump(exclude_unset=True)
    if not patch:
        raise ValueError("No fields to update")

    return await store.update_row('clinical_outcomes', outcome_id, patch)
