import google.generativeai as genai
from groq import Groq

from examprep.core.config import settings


def list_gemini_models():
    if not settings.GOOGLE_API_KEY:
        print("⚠️  GOOGLE_API_KEY not set, skipping Gemini")
        return
    genai.configure(api_key=settings.GOOGLE_API_KEY, transport="rest")
    print("🔍 Connecting to Google...")
    try:
        for m in genai.list_models():
            if 'generateContent' in m.supported_generation_methods:
                marker = "⭐" if m.name.endswith((settings.GEMINI_MODEL, settings.GEMINI_IMAGE_MODEL)) else "✅"
                print(f"{marker} {m.name}")
    except Exception as e:
        print(f"❌ Error: {e}")


def list_groq_models():
    if not settings.GROQ_API_KEY:
        print("⚠️  GROQ_API_KEY not set, skipping Groq")
        return
    print("🔌 Connecting to Groq...")
    try:
        client = Groq(api_key=settings.GROQ_API_KEY)
        for model in client.models.list().data:
            marker = "⭐" if model.id == settings.GROQ_MODEL else "🌟"
            print(f"{marker} {model.id}")
    except Exception as e:
        print(f"❌ Error: {e}")


if __name__ == "__main__":
    list_gemini_models()
    print("-" * 40)
    list_groq_models()
