"""Streamlit front-end for the fee engine."""
from __future__ import annotations

from typing import Sequence

import pandas as pd
import streamlit as st

from fee_engine import FeeEngineContext
from fee_engine.application.use_cases import CalculateFeeUseCase, DiscrepancyReportUseCase
from fee_engine.domain.errors import FeeEngineError
from fee_engine.domain.models import Transaction
from fee_engine.infrastructure.parsing.csv_loader import CsvDataLoader, LoadedData
from fee_engine.presentation.diff_report import discrepancies_to_rows, render_csv, render_html


st.set_page_config(page_title="Fee Engine", layout="wide")
st.title("Currency Conversion Fees")


def stats_to_dataframe(data: LoadedData) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "file": name,
                "processed": s.processed,
                "created": s.created,
                "updated": s.updated,
                "warnings": s.warnings,
                "errors": s.errors,
                "sha256": s.file_hash,
            }
            for name, s in data.stats.items()
        ]
    )


def transactions_to_dataframe(transactions: Sequence[Transaction]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "transaction_id": tx.external_id,
                "client_id": tx.client_external_id,
                "client": tx.client.name if tx.client else "",
                "amount": str(tx.amount),
                "source": tx.source_currency,
                "target": tx.target_currency,
                "created_at": tx.created_at,
                "refunded_at": tx.refunded_at,
                "original_fee": "" if tx.original_fee is None else str(tx.original_fee),
                "original_final_amount": "" if tx.original_final_amount is None else str(tx.original_final_amount),
            }
            for tx in transactions
        ]
    )


def build_context(data: LoadedData) -> FeeEngineContext:
    return FeeEngineContext.build(
        clients=data.clients,
        rates=data.rates,
        transactions=data.transactions,
        ledger=data.transactions,
    )


col1, col2, col3 = st.columns(3)
with col1:
    clients_file = st.file_uploader("Upload clients.csv", type=["csv"])
with col2:
    rates_file = st.file_uploader("Upload rates.csv", type=["csv"])
with col3:
    transactions_file = st.file_uploader("Upload transactions.csv", type=["csv"])

if not (clients_file and rates_file and transactions_file):
    st.info("Upload all three CSV files to start.")
    st.stop()

try:
    data = CsvDataLoader().load(clients_file.getvalue(), rates_file.getvalue(), transactions_file.getvalue())
except FeeEngineError as exc:
    st.error(str(exc))
    st.stop()

st.subheader("Import")
st.dataframe(stats_to_dataframe(data), hide_index=True)

# one context per rerun, so the volume cache never outlives the uploaded data
context = build_context(data)

tabs = st.tabs(["Calculate fee", "Discrepancies", "Transactions"])
with tabs[0]:
    transaction_id = st.text_input("Transaction ID", key="transaction_id")
    if transaction_id:
        try:
            result = CalculateFeeUseCase(context).execute(transaction_id.strip())
        except FeeEngineError as exc:
            st.error(str(exc))
        else:
            st.metric("Tier", result.tier.value)
            st.write(f"Client: {result.client_name}")
            st.write(f"Amount: {result.amount} {result.source_currency} → {result.target_currency}")
            st.write(f"Rate: {result.rate}")
            st.metric("Converted", str(result.converted))
            st.metric("Fee", str(result.fee))
            st.metric("Final", str(result.final_amount))

with tabs[1]:
    if st.button("Run discrepancy report"):
        with st.spinner("Recalculating..."):
            report = DiscrepancyReportUseCase(context).execute()
        summary = report.summary
        st.metric("Compared", summary.compared)
        st.metric("Matched", summary.matched)
        for kind, count in summary.by_kind.items():
            if count:
                st.metric(kind.value, count)
        discrepancies = tuple(report.iter_all_discrepancies())
        st.dataframe(pd.DataFrame(discrepancies_to_rows(discrepancies)))
        st.download_button(
            "Download diff CSV",
            data=render_csv(discrepancies),
            file_name="fee_diff.csv",
            mime="text/csv",
        )
        st.download_button(
            "Download diff HTML",
            data=render_html(report).encode("utf-8"),
            file_name="fee_diff.html",
            mime="text/html",
        )

with tabs[2]:
    st.dataframe(transactions_to_dataframe(data.transactions.list_transactions()))
