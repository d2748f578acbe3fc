"""
Portfolio Tracker
AI narrative package — executive summary generation over report documents.
"""
