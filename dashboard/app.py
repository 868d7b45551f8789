"""Streamlit operator dashboard for bed gender availability."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
API_BASE_URL = os.getenv("FACILITY_API_URL", "http://127.0.0.1:8000")
GENDERS = ["male", "female", "other"]

st.set_page_config(
    page_title="Bed Availability",
    page_icon="🛏️",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def _headers() -> Dict[str, str]:
    token = st.session_state.get("access_token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def _get(path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    try:
        response = requests.get(
            f"{API_BASE_URL}{path}",
            params=params,
            headers=_headers(),
            timeout=5,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        detail = None
        if e.response is not None:
            try:
                detail = e.response.json().get("detail")
            except ValueError:
                detail = None
        if isinstance(detail, dict):
            st.error(detail.get("message", str(e)))
        else:
            st.error(f"Request failed: {e}")
        return None
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None


def login(admin_token: str) -> bool:
    try:
        response = requests.post(
            f"{API_BASE_URL}/login",
            json={"admin_token": admin_token},
            timeout=5,
        )
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        st.error(f"Login failed: {e}")
        return False
    st.session_state["access_token"] = response.json()["access_token"]
    return True


# ==========================================
# UI Page Functions
# ==========================================
def render_availability_page() -> None:
    st.header("Gender Availability")
    st.markdown(
        "Vacant beds by the gender that may occupy them. Male and female totals "
        "include beds open to either gender."
    )

    counts = _get("/analytics/gender_availability")
    if not counts:
        return
    if counts.get("mode") == "degraded":
        st.warning("No facility data source configured; figures are empty.")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Male available", counts["male_available"])
    col2.metric("Female available", counts["female_available"])
    col3.metric("Either gender", counts["either_available"])
    col4.metric("Blocked (mixed scope)", counts["blocked"])

    by_wing = _get("/analytics/gender_availability/by_wing")
    if by_wing and by_wing.get("wings"):
        st.write("### By wing")
        df = pd.DataFrame.from_dict(by_wing["wings"], orient="index")
        st.dataframe(
            df[["male_available", "female_available", "either_available", "blocked", "total_vacant"]],
            use_container_width=True,
        )


def render_bed_check_page() -> None:
    st.header("Bed Compatibility Check")

    col1, col2 = st.columns(2)
    with col1:
        gender = st.selectbox("Resident gender", GENDERS)
    with col2:
        bed_id = st.text_input("Bed ID (optional)")

    if st.button("Check", type="primary"):
        if bed_id:
            result = _get(f"/beds/{bed_id}/compatibility", params={"gender": gender})
            if result:
                if result["compatible"]:
                    st.success(f"Bed {bed_id} is compatible for a {gender} resident.")
                else:
                    st.error(result.get("reason") or "Incompatible")
                if result.get("mode") == "degraded":
                    st.warning("Degraded mode: gender rules were not enforced.")
        else:
            result = _get("/beds/compatible", params={"gender": gender})
            if result:
                beds = result.get("beds", [])
                if beds:
                    st.dataframe(pd.DataFrame(beds), use_container_width=True)
                else:
                    st.info(f"No vacant beds accept a {gender} resident right now.")


def render_recommendations_page() -> None:
    st.header("Move Recommendations")
    st.markdown("Relocations that would release gender-locked beds for waiting residents.")

    result = _get("/analytics/move_recommendations")
    if not result:
        return
    recommendations = result.get("recommendations", [])
    if recommendations:
        st.dataframe(pd.DataFrame(recommendations), use_container_width=True)
    else:
        st.info("No moves would free beds for the current waiting list.")


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Facility Beds")
    st.sidebar.markdown("---")

    admin_token = st.sidebar.text_input("Admin token", type="password")
    if st.sidebar.button("Login") and admin_token:
        if login(admin_token):
            st.sidebar.success("Logged in")

    page = st.sidebar.radio(
        "Navigation",
        ["Availability", "Bed Check", "Move Recommendations"],
    )

    if page == "Availability":
        render_availability_page()
    elif page == "Bed Check":
        render_bed_check_page()
    elif page == "Move Recommendations":
        render_recommendations_page()


if __name__ == "__main__":
    main()
