"""Single-page front end served at `/`. All state comes from /api/v1/state."""

EXAM_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>Exam Prep Gen</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #f8fafc; color: #0f172a; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; max-width: 60rem; margin-inline: auto; }
      .card { background: #ffffff; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.25rem 1rem rgba(15, 23, 42, 0.08); }
      .hidden { display: none; }
      .primary-button { border: none; border-radius: 0.75rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: #4f46e5; color: #fff; cursor: pointer; }
      .primary-button:disabled { opacity: 0.5; cursor: not-allowed; }
      .secondary-button { border: 1px solid #cbd5e1; border-radius: 0.75rem; padding: 0.75rem 1.25rem; background: #fff; cursor: pointer; }
      .secondary-button:disabled { opacity: 0.5; cursor: not-allowed; }
      label { display: block; font-weight: 600; margin: 0.75rem 0 0.35rem; }
      select, textarea { width: 100%; padding: 0.6rem; border-radius: 0.5rem; border: 1px solid #cbd5e1; font-size: 1rem; }
      #error { color: #b91c1c; background: #fef2f2; border-radius: 0.5rem; padding: 0.75rem; }
      .question { border-top: 1px solid #e2e8f0; padding-top: 1rem; margin-top: 1rem; }
      .stem { font-weight: 600; line-height: 1.6; }
      .tag { font-size: 0.75rem; color: #64748b; text-transform: uppercase; }
      .figure { margin: 0.75rem 0; text-align: center; }
      .figure img { max-height: 16rem; max-width: 100%; }
      .figure-pending { color: #64748b; font-style: italic; }
      .options-grid { display: grid; gap: 0.5rem; margin-top: 0.75rem; }
      .option-button { text-align: left; border: 1px solid #cbd5e1; border-radius: 0.75rem; padding: 0.75rem 1rem; background: #fff; cursor: pointer; font-size: 1rem; }
      .option-button.selected { border-color: #4f46e5; background: #eef2ff; }
      .option-button.correct { border-color: #16a34a; background: #f0fdf4; }
      .option-button.wrong { border-color: #dc2626; background: #fef2f2; }
      .option-button:disabled { cursor: default; }
      .explanation { margin-top: 0.75rem; padding: 0.75rem; border-radius: 0.5rem; background: #f0fdf4; }
      .math-raw { font-family: monospace; }
      .actions { display: flex; flex-wrap: wrap; gap: 0.75rem; margin-top: 1rem; }
      #score { font-size: 1.5rem; font-weight: 700; }
    </style>
  </head>
  <body>
    <section class=\"card\" id=\"setup-card\">
      <h1>Exam Prep Gen</h1>
      <p>Upload a PDF, a photo of your notes or a short video, then generate a practice paper.</p>
      <label for=\"file-input\">Study material</label>
      <input id=\"file-input\" type=\"file\" accept=\"application/pdf,image/*,video/*\" />
      <p id=\"material\"></p>
      <label for=\"level-select\">Academic level</label>
      <select id=\"level-select\"></select>
      <label for=\"language-select\">Language</label>
      <select id=\"language-select\"></select>
      <label for=\"focus-input\">Focus topics (optional)</label>
      <textarea id=\"focus-input\" rows=\"2\"></textarea>
      <div class=\"actions\">
        <button id=\"generate-button\" class=\"primary-button\">Generate Quiz</button>
      </div>
    </section>
    <section class=\"card hidden\" id=\"error\"></section>
    <section class=\"card hidden\" id=\"loading-card\">Generating your quiz…</section>
    <section class=\"card hidden\" id=\"quiz-card\">
      <h2 id=\"quiz-title\"></h2>
      <p id=\"quiz-subtitle\" class=\"tag\"></p>
      <div id=\"questions\"></div>
      <p id=\"score\" class=\"hidden\"></p>
      <div class=\"actions\">
        <button id=\"reveal-button\" class=\"primary-button\">Submit Answers</button>
        <button id=\"retry-button\" class=\"secondary-button hidden\">Try Again</button>
        <button id=\"paper-button\" class=\"secondary-button\">Download Paper</button>
        <button id=\"answers-button\" class=\"secondary-button\">Download with Answers</button>
        <button id=\"reset-button\" class=\"secondary-button\">New Assessment</button>
      </div>
    </section>
    <script>
      const API = '/api/v1';
      const fileInput = document.getElementById('file-input');
      const materialEl = document.getElementById('material');
      const levelSelect = document.getElementById('level-select');
      const languageSelect = document.getElementById('language-select');
      const focusInput = document.getElementById('focus-input');
      const generateButton = document.getElementById('generate-button');
      const errorEl = document.getElementById('error');
      const loadingCard = document.getElementById('loading-card');
      const quizCard = document.getElementById('quiz-card');
      const questionsEl = document.getElementById('questions');
      const scoreEl = document.getElementById('score');
      const revealButton = document.getElementById('reveal-button');
      const retryButton = document.getElementById('retry-button');
      const paperButton = document.getElementById('paper-button');
      const answersButton = document.getElementById('answers-button');
      const resetButton = document.getElementById('reset-button');

      let pollHandle = null;
      let lastState = null;

      function setVisibility(element, isVisible) {
        if (isVisible) {
          element.classList.remove('hidden');
        } else {
          element.classList.add('hidden');
        }
      }

      async function call(method, path, body) {
        const options = { method, headers: {} };
        if (body instanceof FormData) {
          options.body = body;
        } else if (body !== undefined) {
          options.headers['Content-Type'] = 'application/json';
          options.body = JSON.stringify(body);
        }
        const response = await fetch(API + path, options);
        const payload = await response.json();
        if (!response.ok) {
          showError(payload.message || 'Request failed');
          return null;
        }
        render(payload);
        return payload;
      }

      function showError(message) {
        errorEl.textContent = message || '';
        setVisibility(errorEl, Boolean(message));
      }

      function fillSelect(select, values, selected) {
        if (!select.options.length) {
          for (const value of values) {
            const option = document.createElement('option');
            option.value = value;
            option.textContent = value;
            select.appendChild(option);
          }
        }
        select.value = selected;
      }

      function escapeHtml(text) {
        const div = document.createElement('div');
        div.textContent = text;
        return div.innerHTML.replace(/"/g, '&quot;');
      }

      function renderQuestion(question, revealed) {
        const wrapper = document.createElement('div');
        wrapper.className = 'question';
        const tag = `<div class=\"tag\">${question.cognitive_level_html}</div>`;
        let figure = '';
        if (question.image_url) {
          figure = `<div class=\"figure\"><img src=\"${question.image_url}\" alt=\"${escapeHtml(question.image_description || 'diagram')}\" /></div>`;
        } else if (question.image_pending) {
          figure = '<div class=\"figure figure-pending\">Generating diagram…</div>';
        }
        wrapper.innerHTML = `${tag}<div class=\"stem\">${question.number}. ${question.stem_html}</div>${figure}`;

        const grid = document.createElement('div');
        grid.className = 'options-grid';
        question.options_html.forEach((optionHtml, index) => {
          const button = document.createElement('button');
          button.className = 'option-button';
          button.innerHTML = `<b>${String.fromCharCode(65 + index)})</b> ${optionHtml}`;
          if (question.selected_index === index) button.classList.add('selected');
          if (revealed) {
            button.disabled = true;
            if (question.correct_index === index) button.classList.add('correct');
            else if (question.selected_index === index) button.classList.add('wrong');
          } else {
            button.addEventListener('click', () => call('PUT', `/answers/${question.question_id}`, { option_index: index }));
          }
          grid.appendChild(button);
        });
        wrapper.appendChild(grid);

        if (revealed && question.explanation_html) {
          const explanation = document.createElement('div');
          explanation.className = 'explanation';
          explanation.innerHTML = `<b>Explanation:</b> ${question.explanation_html}`;
          wrapper.appendChild(explanation);
        }
        return wrapper;
      }

      function render(state) {
        lastState = state;
        showError(state.error);
        materialEl.textContent = state.material ? `${state.material.filename} (${state.material.kind})` : 'No file selected.';
        levelSelect.value = state.academic_level;
        languageSelect.value = state.language;
        if (document.activeElement !== focusInput) focusInput.value = state.focus_topics;
        generateButton.disabled = state.is_loading || !state.material;
        setVisibility(loadingCard, state.is_loading);

        const quiz = state.quiz;
        setVisibility(quizCard, Boolean(quiz));
        if (quiz) {
          document.getElementById('quiz-title').textContent = quiz.title;
          document.getElementById('quiz-subtitle').textContent = `${quiz.subject} • ${quiz.academic_level} • ${quiz.language}`;
          questionsEl.replaceChildren(...quiz.questions.map((q) => renderQuestion(q, state.results_revealed)));
          revealButton.disabled = !state.can_reveal;
          setVisibility(revealButton, !state.results_revealed);
          setVisibility(retryButton, state.results_revealed);
          paperButton.disabled = state.is_exporting;
          answersButton.disabled = state.is_exporting;
          setVisibility(scoreEl, Boolean(state.score));
          if (state.score) {
            scoreEl.textContent = `Score: ${state.score.correct} / ${state.score.total} (${state.score.percentage}%)`;
          }
        }
        schedulePoll(state.images_pending || state.is_loading);
      }

      function schedulePoll(active) {
        if (active && !pollHandle) {
          pollHandle = setInterval(() => call('GET', '/state'), 2000);
        } else if (!active && pollHandle) {
          clearInterval(pollHandle);
          pollHandle = null;
        }
      }

      function pushConfig() {
        call('PUT', '/config', {
          academic_level: levelSelect.value,
          language: languageSelect.value,
          focus_topics: focusInput.value,
        });
      }

      async function download(includeAnswers) {
        const response = await fetch(`${API}/export?include_answers=${includeAnswers}`);
        if (!response.ok) {
          const payload = await response.json();
          showError(payload.message);
          return;
        }
        const disposition = response.headers.get('Content-Disposition') || '';
        const match = /filename=\"([^\"]+)\"/.exec(disposition);
        const link = document.createElement('a');
        link.href = URL.createObjectURL(await response.blob());
        link.download = match ? match[1] : 'quiz.pdf';
        link.click();
        URL.revokeObjectURL(link.href);
      }

      fileInput.addEventListener('change', () => {
        if (!fileInput.files.length) return;
        const form = new FormData();
        form.append('file', fileInput.files[0]);
        call('POST', '/upload', form);
      });
      levelSelect.addEventListener('change', pushConfig);
      languageSelect.addEventListener('change', pushConfig);
      focusInput.addEventListener('change', pushConfig);
      generateButton.addEventListener('click', () => {
        if (lastState) render({ ...lastState, is_loading: true, error: null });
        call('POST', '/generate');
      });
      revealButton.addEventListener('click', () => call('POST', '/reveal'));
      retryButton.addEventListener('click', () => call('POST', '/retry'));
      resetButton.addEventListener('click', () => {
        fileInput.value = '';
        call('POST', '/reset');
      });
      paperButton.addEventListener('click', () => download(false));
      answersButton.addEventListener('click', () => download(true));

      (async () => {
        const options = await (await fetch(`${API}/options`)).json();
        const state = await (await fetch(`${API}/state`)).json();
        fillSelect(levelSelect, options.academic_levels, state.academic_level);
        fillSelect(languageSelect, options.languages, state.language);
        render(state);
      })();
    </script>
  </body>
</html>
"""
