import logging

import streamlit as st

from quizqti.errors import EmptyInputError, ExportBlockedError, QTIEncodingError
from quizqti.models import QuizDocument, has_blocking
from quizqti.package import build_zip
from quizqti.qti_encoder import QTIEncoder, export_package
from quizqti.row_ingestor import ingest_rows, type_from_sheet_name
from quizqti.validator import validate_document
from utils.myutils import read_csv_rows, show_diagnostics

logger = logging.getLogger(__name__)

SHEET_TYPES = ["Detect from rows", "Multiple Choice", "Multiple Answer", "True/False", "Fill-in-the-Blank", "Essay"]


def render_preview(document: QuizDocument):
    """Short listing of the ingested questions"""
    for number, record in enumerate(document.questions, start=1):
        label = type(record).__name__
        with st.expander(f"{number}. [{label}] {record.prompt[:80]}"):
            options = getattr(record, "options", None)
            if options:
                for option in options:
                    mark = "✅" if option.is_correct else "▫️"
                    st.markdown(f"{mark} {option.text}")
            elif hasattr(record, "acceptable_answers"):
                st.markdown("Accepted: " + ", ".join(record.acceptable_answers or ["-"]))
            elif hasattr(record, "answer"):
                st.markdown(f"Answer: **{record.answer_cell or '-'}**")
            else:
                st.caption("Open response")


st.subheader(":material/table_convert: Quick Convert to QTI", divider=True)
col1, col2 = st.columns([2, 3], border=True)

with col1:
    title = st.text_input("Quiz title", value="", placeholder="Untitled Quiz")
    description = st.text_area("Description", value="", height=80)
    sheet_choice = st.selectbox(
        "Question type for untagged rows:",
        SHEET_TYPES,
        help="Rows starting with MC, MA, TF, FIB or ESS always use that type",
    )
    uploaded_file = st.file_uploader(
        "Choose a CSV file",
        type=["csv"],
        help="One question per row: [type tag], question, then options/answers",
    )

with col2:
    if uploaded_file is None:
        st.info("Upload a CSV file to start")
        st.stop()

    rows = read_csv_rows(uploaded_file)
    sheet_type = None if sheet_choice == SHEET_TYPES[0] else type_from_sheet_name(sheet_choice)
    try:
        batch = ingest_rows(rows, sheet_type=sheet_type)
    except EmptyInputError:
        st.error("⚠️ The file contains no rows")
        st.stop()

    document = QuizDocument(title=title, description=description, questions=batch.records)
    diagnostics = list(batch.diagnostics) + validate_document(document)

    st.info(f"📄 {len(batch.records)} question(s) read, {batch.skipped} row(s) skipped")
    with st.expander("Validation results", expanded=has_blocking(diagnostics)):
        show_diagnostics(diagnostics)
    render_preview(document)

    if has_blocking(diagnostics):
        st.warning("Fix the errors above before downloading the QTI package")
    else:
        try:
            package = export_package(document, encoder=QTIEncoder())
        except ExportBlockedError as e:
            show_diagnostics(e.diagnostics)
        except QTIEncodingError as e:
            logger.error("QTI export failed: %s", e)
            st.error(f"Error creating QTI package: {e}")
        else:
            file_stem = (package.title or "quiz").replace(" ", "_")
            st.download_button(
                label="Download QTI package",
                data=build_zip(package),
                file_name=f"{file_stem}_qti.zip",
                mime="application/zip",
                icon=":material/download:",
            )
