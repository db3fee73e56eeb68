"""
Streamlit web interface. Launch with `audit-agent ui`.
"""
