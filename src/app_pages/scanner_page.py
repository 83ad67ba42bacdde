import asyncio
import datetime as dt

import cv2
import numpy as np
import streamlit as st
from PIL import Image

from src.pipeline.config import DEFAULT_CONFIG
from src.pipeline.detect import detect_plate
from src.pipeline.enhancement import prepare_steps
from src.pipeline.errors import OcrEngineError
from src.pipeline.export import artifact_name, encode_png
from src.pipeline.normalize import normalize_plate_text, plate_format
from src.pipeline.ocr import ENGINES, build_engine, read_plate_text
from src.pipeline.visualize import draw_contours, draw_crop_rect, draw_plate_quad


def _rgb(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def render():
    st.markdown("# 🚘 Plate Scanner")
    st.markdown("*Contour detection, perspective rectification and OCR for Brazilian plates*")

    engine_name = st.radio("🔧 OCR engine:", sorted(ENGINES), horizontal=True)
    uploaded_file = st.file_uploader("📁 Upload an image", type=["jpg", "png", "jpeg"], key="scanner_uploader")

    if uploaded_file is None:
        st.info("Upload a photo with a frontal plate to start.")
        return

    image = Image.open(uploaded_file)
    img_bgr = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2BGR)

    col1, col2 = st.columns(2)
    with col1:
        st.image(image, caption="Uploaded Image", use_container_width=True)

    if not st.button("🚀 Scan Plate", use_container_width=True):
        return

    with st.spinner("Looking for a plate..."):
        detection = detect_plate(img_bgr)

    if not detection.found:
        with col2:
            st.image(_rgb(draw_contours(img_bgr, detection.contours)), caption="Contours (no plate found)", use_container_width=True)
        st.warning(f"No plate detected ({detection.reason}).")
        return

    with col2:
        st.image(_rgb(draw_plate_quad(img_bgr, detection.region.corners)), caption="Detected Plate", use_container_width=True)

    st.success(f"✅ Plate candidate found (score {detection.candidate.score:.2f})")

    st.subheader("📊 Rectification")
    cols = st.columns(2)
    with cols[0]:
        st.image(
            _rgb(draw_crop_rect(detection.plate.image, detection.plate.crop.as_tuple())),
            caption="Rectified Plate",
            use_container_width=True,
        )
    with cols[1]:
        st.image(_rgb(detection.character_zone), caption="Character Zone", use_container_width=True)

    steps = prepare_steps(detection.character_zone)
    st.subheader("🧪 OCR Preprocessing")
    step_cols = st.columns(3)
    for idx, (name, step_image) in enumerate(steps.items()):
        with step_cols[idx % 3]:
            st.image(step_image, caption=name.title(), use_container_width=True)

    processed = steps["closed"]
    with st.spinner(f"Running {engine_name}..."):
        try:
            raw_text = asyncio.run(read_plate_text(build_engine(engine_name), processed, DEFAULT_CONFIG.ocr))
        except OcrEngineError as exc:
            st.error(f"Plate processing error: {exc}")
            return

    plate_text = normalize_plate_text(raw_text)
    fmt = plate_format(plate_text)
    if plate_text:
        st.info(f"**Recognized text**: {plate_text}" + (f" ({fmt} format)" if fmt else ""))
    else:
        st.warning("No text recognized on the plate.")
    st.caption(f"Raw OCR output: {raw_text!r}")

    st.download_button(
        "📥 Download plate image",
        encode_png(processed),
        artifact_name(dt.datetime.now(tz=dt.timezone.utc)),
        "image/png",
    )
