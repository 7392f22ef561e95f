import requests
import fitz  # PyMuPDF

BASE_URL = "http://localhost:8000"


def create_dummy_pdf(filename="smoke.pdf"):
    doc = fitz.open()
    page = doc.new_page()
    text = """
    Linear equations in one variable.

    To solve 2x + 3 = 11, subtract 3 from both sides to get 2x = 8,
    then divide both sides by 2 to get x = 4.

    A right triangle with legs 3 cm and 4 cm has a hypotenuse of 5 cm.
    """
    page.insert_text((50, 50), text)
    doc.save(filename)
    doc.close()
    print(f"Created {filename}")
    return filename


def check_health():
    try:
        r = requests.get(f"{BASE_URL}/health")
        print("Health Check:", r.status_code, r.json())
    except Exception as e:
        print("Health Check Failed:", e)


def run_full_flow():
    path = create_dummy_pdf()
    try:
        with open(path, "rb") as fh:
            r = requests.post(f"{BASE_URL}/api/v1/upload", files={"file": (path, fh, "application/pdf")})
        print("Upload:", r.status_code)

        r = requests.put(
            f"{BASE_URL}/api/v1/config",
            json={"academic_level": "GCE O/L", "language": "English", "focus_topics": "Algebra"},
        )
        print("Config:", r.status_code)

        print("Generating...")
        r = requests.post(f"{BASE_URL}/api/v1/generate", timeout=330)
        print("Generate:", r.status_code)
        if r.status_code != 200:
            print("Error:", r.text)
            return
        quiz = r.json()["quiz"]
        print(f"Quiz: {quiz['title']} — {len(quiz['questions'])} questions")

        for q in quiz["questions"]:
            requests.put(f"{BASE_URL}/api/v1/answers/{q['question_id']}", json={"option_index": 0})
        r = requests.post(f"{BASE_URL}/api/v1/reveal")
        print("Score:", r.json()["score"])

        r = requests.get(f"{BASE_URL}/api/v1/export", params={"include_answers": "true"})
        print("Export:", r.status_code, r.headers.get("Content-Disposition"), f"{len(r.content)} bytes")
    except Exception as e:
        print("Flow Failed:", e)


if __name__ == "__main__":
    check_health()
    # run_full_flow()  # needs GOOGLE_API_KEY on the server
