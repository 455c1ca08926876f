#myutils.py
# Streamlit helpers shared by the quick-convert and QTI preview pages.
import csv
import io
from typing import List

import streamlit as st

from quizqti.models import Diagnostic


def align_top_css():
    css = '''
        .stMainBlockContainer {
            margin-top:-80px;}

        [data-testid="stHeader"] {
            visibility:hidden;
            margin-top:-20px; }

        [data-testid="stToolbar"] {
            visibility:hidden; }

        [data-testid="stAppViewBlockContainer"] {
            margin-top:-80px; }
    '''
    st.markdown(f'<style>{css}</style>',unsafe_allow_html=True)


def read_csv_rows(uploaded_file) -> List[List[str]]:
    """Read an uploaded CSV file into rows of string cells"""
    raw = uploaded_file.getvalue()
    text = raw.decode('utf-8-sig', errors='replace') if isinstance(raw, bytes) else raw
    return [row for row in csv.reader(io.StringIO(text))]


def show_diagnostics(diagnostics: List[Diagnostic], container=None):
    """Errors first, then warnings"""
    container = container or st
    errors = [d for d in diagnostics if d.is_error]
    warnings = [d for d in diagnostics if not d.is_error]
    for d in errors:
        container.error(f"⚠️ {d.describe()}")
    for d in warnings:
        container.warning(d.describe())
    if not diagnostics:
        container.success("✅ No problems found")
