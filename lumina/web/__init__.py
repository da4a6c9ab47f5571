"""Web interface for the Lumina photo editor."""


# Function to run the web app
def run_web_app():
    """Run the Streamlit web app."""
    import sys
    from pathlib import Path
    from streamlit.web import cli as st_cli

    app_path = Path(__file__).parent / "app.py"
    sys.argv = ["streamlit", "run", str(app_path)]
    sys.exit(st_cli.main())
