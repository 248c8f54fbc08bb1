"""
Report generation module for LoanBook.
Portfolio totals, per-customer groupings, per-contract history and the
CSV/Excel export of the grouped report.
"""
import logging
from typing import Iterable, List

import pandas as pd
from xlsxwriter.exceptions import XlsxWriterException

from loanbook.models import (
    Contract,
    EnrichedContract,
    PortfolioStats,
    ReportGroup,
    Transaction,
)
from loanbook.result import ErrorType, Result

logger = logging.getLogger(__name__)


def _transactions_df(transactions: Iterable[Transaction]) -> pd.DataFrame:
    transactions = list(transactions)
    return pd.DataFrame({
        'id': pd.Series([t.id for t in transactions], dtype='object'),
        'customer_id': pd.Series([t.customer_id for t in transactions], dtype='object'),
        'amount': pd.Series([t.amount for t in transactions], dtype='float64'),
        'date': pd.to_datetime(pd.Series([t.payment_date for t in transactions], dtype='object')),
    })


def _enriched_df(enriched: List[EnrichedContract]) -> pd.DataFrame:
    return pd.DataFrame({
        'name': pd.Series([e.name for e in enriched], dtype='object'),
        'loan_amount': pd.Series([e.contract.loan_amount for e in enriched], dtype='float64'),
        'total_paid': pd.Series([e.total_paid for e in enriched], dtype='float64'),
        'is_overdue': pd.Series([e.is_overdue for e in enriched], dtype='bool'),
        'current_penalty': pd.Series([e.current_penalty for e in enriched], dtype='float64'),
    })


def portfolio_stats(contracts: Iterable[Contract], transactions: Iterable[Transaction],
                    enriched: List[EnrichedContract]) -> PortfolioStats:
    """Headline totals for the dashboard.

    ``total_collected`` counts every transaction, including those whose
    contract has since been deleted.
    """
    total_loaned = float(sum(c.loan_amount for c in contracts))
    tx_df = _transactions_df(transactions)
    en_df = _enriched_df(enriched)
    return PortfolioStats(
        total_loaned=total_loaned,
        total_collected=float(tx_df['amount'].sum()),
        overdue_count=int(en_df['is_overdue'].sum()),
        total_penalty=float(en_df['current_penalty'].sum()),
    )


def report_groups(enriched: List[EnrichedContract]) -> List[ReportGroup]:
    """Group contracts by customer name, keeping first-seen order."""
    df = _enriched_df(enriched)
    if df.empty:
        return []

    groups = []
    for name, group in df.groupby('name', sort=False):
        groups.append(ReportGroup(
            name=name,
            loans=[enriched[i] for i in group.index],
            total_loaned=float(group['loan_amount'].sum()),
            total_paid=float(group['total_paid'].sum()),
        ))
    return groups


def contract_history(transactions: Iterable[Transaction], contract_id: str) -> List[Transaction]:
    """All payments for one contract, latest payment date first."""
    transactions = list(transactions)
    df = _transactions_df(transactions)
    if df.empty:
        return []

    mine = df[df['customer_id'] == contract_id]
    mine = mine.sort_values(by='date', ascending=False, kind='stable', na_position='last')
    return [transactions[i] for i in mine.index]


def recent_transactions(transactions: Iterable[Transaction], limit: int = 5) -> List[Transaction]:
    """The newest ``limit`` transactions (the log is kept newest first)."""
    return list(transactions)[:limit]


# =============================================================================
# EXPORT
# =============================================================================

EXPORT_COLUMNS = ["Name", "Contracts", "Total Loaned", "Total Paid", "Outstanding"]


def report_frame(groups: List[ReportGroup]) -> pd.DataFrame:
    """One row per customer plus a TOTAL row."""
    rows = [{
        "Name": g.name,
        "Contracts": len(g.loans),
        "Total Loaned": g.total_loaned,
        "Total Paid": g.total_paid,
        "Outstanding": float(sum(e.current_balance for e in g.loans)),
    } for g in groups]

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    if df.empty:
        return df

    # Contracts stays an integer column
    numeric = df.select_dtypes(include=['number']).columns
    total_row = {col: df[col].sum() if col in numeric else '' for col in df.columns}
    total_row['Name'] = 'TOTAL'
    return pd.concat([df, pd.DataFrame([total_row])], ignore_index=True)


def export_report(groups: List[ReportGroup], output_path: str) -> Result:
    """Write the grouped report to CSV or Excel, chosen by extension.

    Returns:
        Result with the written path, or EXPORT_FAILED with the reason.
    """
    df = report_frame(groups)
    try:
        if output_path.lower().endswith('.csv'):
            df.to_csv(output_path, index=False)
        else:
            _export_to_excel(df, output_path)
    except (OSError, XlsxWriterException) as e:
        logger.error("Report export to %s failed: %s", output_path, e)
        return Result.fail(f"Export failed: {e}", ErrorType.EXPORT_FAILED)

    logger.info("Exported %d report groups to %s", len(groups), output_path)
    return Result.ok(output_path)


def _export_to_excel(df: pd.DataFrame, output_path: str):
    with pd.ExcelWriter(output_path, engine='xlsxwriter') as writer:
        df.to_excel(writer, index=False, sheet_name='Loan Book')
        workbook = writer.book
        worksheet = writer.sheets['Loan Book']

        header_fmt = workbook.add_format({'bold': True, 'border': 1, 'bg_color': '#D7E4BC'})
        num_fmt = workbook.add_format({'num_format': '#,##0.00'})
        total_fmt = workbook.add_format({'bold': True, 'border': 1, 'num_format': '#,##0.00'})

        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_fmt)

        worksheet.set_column('A:A', 25)
        worksheet.set_column('B:B', 10)
        worksheet.set_column('C:E', 15, num_fmt)

        if not df.empty:
            total_row_idx = len(df)
            for col_num, col_name in enumerate(df.columns):
                worksheet.write(total_row_idx, col_num, df.iloc[-1][col_name], total_fmt)
