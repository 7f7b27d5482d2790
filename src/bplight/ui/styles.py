import streamlit as st

GLOBAL_CSS = """
<style>
.block-container {
    padding-top: 2rem;
}

.bp-card {
  border-radius:18px;
  padding:0;
  overflow:hidden;
  background:#ffffff;
  border:1px solid rgba(0,0,0,0.08);
  margin-bottom:12px;
}

.bp-body {padding:12px 14px;}

.light-icon  {font-size:64px; text-align:center; line-height:1.1;}
.light-label {font-size:28px; font-weight:800; text-align:center;}
.light-desc  {text-align:center; opacity:.8;}

.light-red    { color:#dc3545; }
.light-yellow { color:#e0a800; }
.light-green  { color:#198754; }

.bp-stat {border:1px solid rgba(0,0,0,.06); border-radius:10px; padding:8px; background:#f8fafc; text-align:center;}
.bp-stat .num {font-size:24px; font-weight:800;}
.bp-stat .pct {font-size:12px; opacity:.65;}
</style>
"""


def inject() -> None:
    """Inject global CSS into the Streamlit page."""
    st.markdown(GLOBAL_CSS, unsafe_allow_html=True)
