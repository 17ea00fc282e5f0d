"""Streamlit screen: map, live position and heading guide line."""

from __future__ import annotations

import asyncio

import streamlit as st

from mapline.clients.ip_locator import LocatorChain, locator_order
from mapline.controller import GuideLineController
from mapline.errors import LocationLookupError
from mapline.location import StaticLocationSource
from mapline.models import FixStatus, GeoPoint, color_options
from mapline.permissions import StaticPermissionGate
from mapline.renderers.deck import DeckMapRenderer
from mapline.settings import load_settings
from mapline.sources import LOCATORS

# --- Page config ---
st.set_page_config(page_title="Heading guide", page_icon="🧭", layout="wide")


async def _locate(locator: str) -> GeoPoint:
    chain = LocatorChain(locator_order(locator))
    try:
        return await chain.locate()
    finally:
        await chain.close()


async def _grant(controller: GuideLineController) -> FixStatus:
    """Apply the permission answer and wait out the first-fix poll in one loop."""
    await controller.request_permission()
    return await controller.wait_for_fix()


def _get_controller() -> GuideLineController:
    """One controller per browser session, opened on first use."""
    if "controller" not in st.session_state:
        settings = load_settings()
        renderer = DeckMapRenderer(
            center=settings.initial_center,
            zoom=settings.zoom,
            map_provider=settings.map_provider,
            map_style=settings.map_style,
        )
        controller = GuideLineController(
            renderer=renderer,
            location=StaticLocationSource(renderer=renderer),
            permissions=StaticPermissionGate(granted=False),
            settings=settings,
        )
        controller.open()
        st.session_state.controller = controller
    return st.session_state.controller


controller = _get_controller()
settings = controller.settings

# --- Sidebar: location ---
with st.sidebar:
    st.title("🧭 Heading guide")
    allow = st.checkbox("Allow location access", value=controller.has_permission)
    if allow != controller.has_permission:
        controller.permissions.granted = allow
        with st.spinner("Waiting for a location fix..."):
            asyncio.run(_grant(controller))

    source = st.radio("Position from", ["IP lookup", "Manual"], disabled=not allow)
    if source == "IP lookup":
        locator = st.selectbox("Locator", list(LOCATORS), index=list(LOCATORS).index(settings.locator))
        if st.button("Locate me", disabled=not allow):
            try:
                controller.location.deliver_fix(asyncio.run(_locate(locator)))
            except LocationLookupError as exc:
                st.error(f"Location lookup failed: {exc}")
    else:
        lat = st.number_input("Latitude", -90.0, 90.0, controller.current_start().latitude, format="%.6f")
        lon = st.number_input("Longitude", -180.0, 180.0, controller.current_start().longitude, format="%.6f")
        if st.button("Set position", disabled=not allow):
            controller.location.deliver_fix(GeoPoint(lat, lon))
            controller.renderer.animate_to(GeoPoint(lat, lon))

# --- Controls ---
col_map, col_controls = st.columns([3, 1])

with col_controls:
    st.subheader("Heading direction")
    heading = st.slider("Heading (°)", 0.0, 360.0, controller.state.heading, step=settings.heading_step)
    length = st.slider(
        "Line length (m)",
        settings.min_length_m, settings.max_length_m, controller.state.length_m,
        step=settings.length_step,
    )
    color_names, color_index = color_options(controller.state.color)
    color = st.selectbox(
        "Line color", color_names,
        index=color_index,
        format_func=lambda name: name.replace("_", " "),
    )
    follow = st.checkbox("Follow my location", value=controller.state.follow_location)

    if heading != controller.state.heading:
        controller.set_heading(heading)
    if length != controller.state.length_m:
        controller.set_length(length)
    if color != controller.state.color.name:
        controller.set_color(color)
    if follow != controller.state.follow_location:
        controller.set_follow_location(follow)

    if st.button("Refresh line"):
        controller.refresh()

    st.caption(f"Status: {controller.status.value}")
    if controller.segment is not None:
        st.metric("Drawn length", f"{controller.segment.length_m:.0f} m")

with col_map:
    st.pydeck_chart(controller.renderer.deck, height=480)
    st.caption("Base map tiles © OpenStreetMap contributors, © CARTO.")
