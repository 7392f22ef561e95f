print("Checking imports...")
try:
    import fitz
    print(f"PyMuPDF: OK ({fitz.VersionBind})")
except ImportError as e:
    print(f"PyMuPDF Error: {e}")

try:
    import google.generativeai
    print("Gemini: OK")
except ImportError as e:
    print(f"Gemini Error: {e}")

try:
    import groq
    print("Groq: OK")
except ImportError as e:
    print(f"Groq Error: {e}")

try:
    from matplotlib import mathtext
    print("mathtext: OK")
except ImportError as e:
    print(f"mathtext Error: {e}")

try:
    from examprep.main import app
    print(f"App Import: OK ({len(app.routes)} routes)")
except Exception as e:
    print(f"App Import Error: {e}")

print("Done.")
