import pytest

from utils.delta import Delta, DeltaContent, DeltaFormatError, Op, RawContent, parse_content


def test_loads_reads_ops_document():
    delta = Delta.loads('{"ops":[{"insert":"Hi"},{"insert":"\\n","attributes":{"header":1}}]}')
    assert len(delta) == 2
    assert delta.ops[0] == Op(insert='Hi')
    assert delta.ops[1].attributes == {'header': 1}


@pytest.mark.parametrize('raw', ['not json', '[1, 2]', '{"foo": 1}', '{"ops": "nope"}', '{"ops": [{"text": "x"}]}'])
def test_loads_rejects_non_delta_values(raw):
    with pytest.raises(DeltaFormatError):
        Delta.loads(raw)


def test_insert_merges_text_with_matching_attributes():
    delta = Delta()
    delta.insert('Hello ').insert('there').insert('!', {'bold': True}).insert('')
    assert [op.insert for op in delta.ops] == ['Hello there', '!']


def test_from_text_ends_with_newline():
    assert Delta.from_text('abc').plain_text() == 'abc\n'
    assert Delta.from_text('abc\n').plain_text() == 'abc\n'


def test_dumps_is_compact_and_loads_back():
    delta = Delta.from_text('a')
    assert delta.dumps() == '{"ops":[{"insert":"a\\n"}]}'
    assert Delta.loads(delta.dumps()) == delta


def test_parse_content_resolves_variants():
    assert parse_content(None) == RawContent('')
    assert parse_content('plain words') == RawContent('plain words')
    assert parse_content('{"ops": "x"}') == RawContent('{"ops": "x"}')

    content = parse_content('{"ops":[{"insert":"Hi\\n"}]}')
    assert isinstance(content, DeltaContent)
    assert content.delta.plain_text() == 'Hi\n'


def test_parse_content_accepts_mapping():
    content = parse_content({'ops': [{'insert': 'x\n'}]})
    assert isinstance(content, DeltaContent)


def test_loads_rejects_json_nested_past_the_recursion_limit():
    with pytest.raises(DeltaFormatError):
        Delta.loads('[' * 100000)
    assert parse_content('[' * 100000) == RawContent('[' * 100000)
