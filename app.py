import streamlit as st
from quizqti.logging_utils import setup_logger
from utils.myutils import align_top_css

st.set_page_config(page_title="QuizQTI", page_icon=None, layout="wide")

align_top_css()


def start_app():
    setup_logger()
    quick_convert_page = st.Page("teacher/quick_convert.py", title="Quick convert to QTI", icon=":material/table_convert:", default=True)
    qti_preview_page = st.Page("teacher/qti_preview.py", title="Preview QTI quiz", icon=":material/preview:")

    pg = st.navigation(
        {
            "Convert": [quick_convert_page],
            "Review": [qti_preview_page],
        }
    )
    pg.run()


def main():
    start_app()


if __name__ == "__main__":
    main()
