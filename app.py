import streamlit as st
import sys
from pathlib import Path

# Add repo root to sys.path
REPO_ROOT = Path(__file__).resolve().parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.app_pages import scanner_page

st.set_page_config(
    page_title="PlacaScan",
    page_icon="🚘",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;600;800&display=swap');

    html, body, [class*="css"] {
        font-family: 'Inter', sans-serif;
    }

    h1 {
        background: linear-gradient(90deg, #009C3B, #FFDF00);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        font-weight: 800 !important;
    }

    .stButton > button {
        background: linear-gradient(135deg, #002776 0%, #009C3B 100%);
        color: white !important;
        border-radius: 12px;
        border: none;
        padding: 0.75rem 1.5rem;
        font-weight: 600;
    }

    [data-testid="stFileUploader"] {
        border: 2px dashed rgba(0, 156, 59, 0.5);
        border-radius: 12px;
        padding: 1rem;
    }

    .stAlert {
        border-radius: 12px;
        border-left: 4px solid #009C3B;
    }
</style>
""", unsafe_allow_html=True)

def main():
    st.sidebar.markdown("""
    # 🚘 PlacaScan
    ### Brazilian License Plate Scanner
    ---
    """)
    st.sidebar.markdown("""
    **📚 Resources:**
    - [OpenCV](https://docs.opencv.org/)
    - [Tesseract](https://github.com/tesseract-ocr/tesseract)
    - [EasyOCR](https://github.com/JaidedAI/EasyOCR)
    """)

    scanner_page.render()

if __name__ == "__main__":
    main()
