import logging

import streamlit as st

from quizqti.docx_converter import QuizToDocxConverter
from quizqti.errors import QTIDecodeError
from quizqti.models import MultipleAnswer, MultipleChoice, TrueFalse, FillInBlank
from quizqti.qti_decoder import QTIDecoder
from utils.myutils import show_diagnostics

logger = logging.getLogger(__name__)


def display_question(record, number: int, show_answers: bool):
    st.markdown(f"**{number}.** {record.prompt}")
    if isinstance(record, (MultipleChoice, MultipleAnswer)):
        for i, option in enumerate(record.options):
            mark = " ✅" if show_answers and option.is_correct else ""
            st.markdown(f"&nbsp;&nbsp;{chr(65 + i)}. {option.text}{mark}")
    elif isinstance(record, TrueFalse):
        answer = "True" if record.answer else "False"
        st.markdown("&nbsp;&nbsp;True / False" + (f" (answer: **{answer}**)" if show_answers else ""))
    elif isinstance(record, FillInBlank):
        if show_answers:
            st.markdown("&nbsp;&nbsp;Accepted: " + ", ".join(record.acceptable_answers or ["-"]))
    else:
        st.caption("Essay")


st.subheader(":material/preview: Preview QTI Quiz", divider=True)
col1, col2 = st.columns([2, 3], border=True)

with col1:
    uploaded_file = st.file_uploader(
        "Choose a QTI package or questions file",
        type=["zip", "xml"],
        help="A Canvas/QTI 1.2 export (.zip) or its questions.xml",
    )
    show_answers = st.toggle("Show answers", value=True)
    include_key = st.toggle("Include answer key in paper", value=False)

with col2:
    if uploaded_file is None:
        st.info("Upload a QTI file to preview it")
        st.stop()

    decoder = QTIDecoder()
    data = uploaded_file.getvalue()
    try:
        if uploaded_file.name.lower().endswith(".zip"):
            quiz = decoder.decode_package(data)
        else:
            quiz = decoder.decode_questions(data)
    except QTIDecodeError as e:
        logger.error("Could not read %s: %s", uploaded_file.name, e)
        st.error(f"⚠️ Could not read file: {e}")
        st.stop()

    title = quiz.title or uploaded_file.name.rsplit(".", 1)[0]
    st.markdown(f"### {title}")
    if quiz.description:
        st.caption(quiz.description)
    if quiz.warnings:
        with st.expander(f"{len(quiz.warnings)} warning(s)"):
            show_diagnostics(list(quiz.warnings))

    for number, record in enumerate(quiz.questions, start=1):
        display_question(record, number, show_answers)

    if quiz.questions:
        converter = QuizToDocxConverter(quiz.questions, title=title, include_answers=include_key,
                                        description=quiz.description)
        st.download_button(
            label="Download quiz paper (.docx)",
            data=converter.generate_docx_bytes(),
            file_name=f"{title.replace(' ', '_')}.docx",
            mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            icon=":material/download:",
        )
