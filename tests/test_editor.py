import io
import json

import pytest
from werkzeug.datastructures import FileStorage

from utils.delta import Delta, DeltaFormatError
from utils.editor import (EditorSession, SubmissionGuard, SubmissionInProgress, build_blog_payload,
                          build_project_payload, editor_from_submission, file_part)
from utils.schemas import BlogForm, ProjectForm


def test_editor_seeded_from_delta_content():
    stored = '{"ops":[{"insert":"Hello "},{"insert":"world","attributes":{"bold":true}},{"insert":"\\n"}]}'
    editor = EditorSession(stored)
    assert editor.initial_html == '<p>Hello <strong>world</strong></p>'
    assert editor.word_count == 2
    assert editor.get_contents() == Delta.loads(stored)


def test_editor_seeded_from_legacy_text():
    editor = EditorSession('<p>Old post body</p>')
    assert editor.initial_html == '<p>Old post body</p>'
    assert editor.get_contents().plain_text().split() == ['Old', 'post', 'body']


def test_empty_editor():
    editor = EditorSession()
    assert editor.is_empty()
    assert editor.word_count == 0
    assert editor.serialized() == '{"ops":[]}'


def test_change_listeners_see_live_word_count():
    counts = []
    editor = EditorSession()
    editor.on_change(lambda e: counts.append(e.word_count))
    editor.set_contents([{'insert': 'one two\n'}])
    editor.insert_text(' three')
    assert counts == [2, 3]
    assert editor.get_contents().plain_text() == 'one two three\n'


def test_editor_from_submission_rejects_malformed_delta():
    with pytest.raises(DeltaFormatError):
        editor_from_submission(None, 'not a delta')


def test_editor_from_submission_keeps_stored_content_when_nothing_posted():
    stored = Delta.from_text('kept').dumps()
    assert editor_from_submission(stored, '').serialized() == stored


def test_blog_payload_carries_serialized_delta():
    delta = Delta.from_text('Body text')
    form = BlogForm(title='A title', excerpt='An excerpt that is long enough', content=delta.dumps(),
                    tags='python, flask')
    payload = build_blog_payload(form, delta)
    assert payload == {'blog': {
        'title': 'A title',
        'excerpt': 'An excerpt that is long enough',
        'content': delta.dumps(),
        'tags': ['python', 'flask'],
    }}
    assert json.loads(payload['blog']['content']) == {'ops': [{'insert': 'Body text\n'}]}


def test_project_payload_uses_api_field_names():
    delta = Delta.from_text('x' * 60)
    form = ProjectForm(title='Tracker', description=delta.dumps(), live_url='https://t.example.com',
                       repo_url='', tech_stack='Python, Flask, Python', features='Charts')
    payload = build_project_payload(form, delta)['project']
    assert payload['description'] == delta.dumps()
    assert payload['liveUrl'] == 'https://t.example.com'
    assert payload['techStack'] == ['Python', 'Flask']
    assert payload['features'] == ['Charts']


def test_file_part_sanitizes_filename():
    upload = FileStorage(stream=io.BytesIO(b'img'), filename='../../cover photo.png', content_type='image/png')
    name, (filename, stream, mimetype) = file_part('file', upload)
    assert name == 'file'
    assert filename == 'cover_photo.png'
    assert mimetype == 'image/png'
    assert stream.read() == b'img'


def test_submission_guard_allows_one_save_in_flight():
    guard = SubmissionGuard()
    with guard.hold('form-1'):
        assert guard.busy('form-1')
        with pytest.raises(SubmissionInProgress):
            with guard.hold('form-1'):
                pass
        with guard.hold('form-2'):
            pass
    assert not guard.busy('form-1')


def test_editor_counts_tag_shaped_words_in_delta_text():
    editor = EditorSession('{"ops":[{"insert":"use <div> here\\n"}]}')
    assert editor.word_count == 3
    editor.set_contents([{'insert': '<b> and <i>\n'}])
    assert editor.word_count == 3


def test_editor_seeded_from_deeply_nested_json():
    stored = '[' * 100000
    editor = EditorSession(stored)
    assert editor.initial_html == f'<p>{stored}</p>'
    assert editor.get_contents().plain_text() == stored + '\n'
    assert editor.word_count == 1
