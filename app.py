# app.py
import streamlit as st

st.set_page_config(
    page_title="Operations Performance Home",
    page_icon="📊",
    layout="wide"
)

st.title("📊 Welcome to the Operations Performance Portal")

st.write(
    "These reports score incident tickets per KPI and per user: how many were "
    "resolved, how many are overdue, the average lead time and a weighted compliance rate."
)
st.info("Select a report from the navigation sidebar on the left to begin.")
