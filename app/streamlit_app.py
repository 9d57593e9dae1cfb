"""
Salience tuner: still-image parameter playground.

Upload an image, move the sliders and see the score map, the cleaned mask
and the region the tracker would lock onto. The current settings can be
downloaded as a JSON profile for motion_scripts/salience_track.py --config.

Run:
    streamlit run app/streamlit_app.py
"""

import io
import json
import sys
from pathlib import Path

import numpy as np
import streamlit as st
from PIL import Image

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from salience.config import PROFILES, apply_overrides, get_profile  # noqa: E402
from salience.errors import ConfigError  # noqa: E402
from salience.overlay import OverlayRenderer  # noqa: E402
from salience.pipeline import DetectorState, analyze  # noqa: E402
from salience.source import ArraySource  # noqa: E402


st.set_page_config(page_title="Salience Tuner", layout="wide")
st.title("Salience Tuner: grid scoring & blob selection")

with st.sidebar:
    st.header("Profile")
    profile = st.selectbox("Base profile", sorted(PROFILES), index=sorted(PROFILES).index("edge"))
    base = get_profile(profile)

    st.header("Grid")
    cell_size = st.slider("Cell size (px)", 4, 96, base.grid.cell_size, step=2)

    st.header("Scoring")
    rule = st.selectbox("Rule", ["edge", "variance"], index=["edge", "variance"].index(base.score.rule))
    threshold = st.slider("Threshold", -50.0, 100.0, float(base.score.threshold), 0.5)
    edge_floor = st.slider("Edge floor", 0.0, 100.0, float(base.score.edge_floor), 1.0)
    noise_weight = st.slider("Noise weight", 0.0, 30.0, float(base.score.noise_weight), 0.5)

    st.header("Blobs")
    iterations = st.slider("Closing passes", 0, 3, base.morphology.iterations)
    min_size = st.slider("Min cluster size (cells)", 1, 200, base.blob.min_cluster_size)
    max_frac = st.slider("Max cluster fraction", 0.05, 1.0, float(base.blob.max_cluster_fraction), 0.05)
    use_aspect = st.toggle("Aspect filter", value=base.blob.use_aspect_filter)

uploaded = st.file_uploader("Upload image", type=["jpg", "jpeg", "png", "bmp", "tif", "tiff"])

if uploaded is not None:
    try:
        img = Image.open(io.BytesIO(uploaded.read())).convert("RGB")
    except Exception as e:
        st.error(f"Could not read image: {e}")
        st.stop()

    overrides = {
        "grid": {"mode": "cell", "cell_size": cell_size},
        "score": {"rule": rule, "threshold": threshold, "edge_floor": edge_floor,
                  "noise_weight": noise_weight},
        "morphology": {"iterations": iterations},
        "blob": {"min_cluster_size": min_size, "max_cluster_fraction": max_frac,
                 "use_aspect_filter": use_aspect},
    }
    try:
        config = apply_overrides(base, overrides)
    except ConfigError as e:
        st.error(str(e))
        st.stop()

    # Renderer works in BGR like the video runner.
    frame = np.ascontiguousarray(np.array(img)[:, :, ::-1])
    analysis = analyze(ArraySource(frame, color="bgr"), config, DetectorState())
    if analysis is None:
        st.warning(f"Image is smaller than one {cell_size}px cell.")
        st.stop()

    renderer = OverlayRenderer()
    h, w = frame.shape[:2]
    annotated = renderer.render(frame, analysis.result)
    heat = renderer.score_heatmap(analysis, (w, h))
    mask = renderer.mask_view(analysis, (w, h))

    col1, col2, col3 = st.columns(3)
    col1.image(heat[:, :, ::-1], caption="Score map", use_container_width=True)
    col2.image(mask[:, :, ::-1], caption="Mask (grey raw, white cleaned)", use_container_width=True)
    col3.image(annotated[:, :, ::-1], caption="Tracker output", use_container_width=True)

    active_pct = 100.0 * analysis.active.mean()
    st.write(
        f"Grid {analysis.grid.width}×{analysis.grid.height}  |  active {active_pct:.1f}%  |  "
        f"blobs {len(analysis.blobs)}  |  candidates {len(analysis.candidates)}  |  "
        f"seed {analysis.seed} = {analysis.seed_score:.1f}"
    )
    st.json(analysis.result.to_dict())

    st.download_button(
        "Download profile JSON",
        data=json.dumps(config.to_dict(), indent=2),
        file_name="salience_profile.json",
        mime="application/json",
    )
