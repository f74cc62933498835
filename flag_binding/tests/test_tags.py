from dataclasses import MISSING, dataclass, field, fields
from datetime import timedelta
from enum import Enum

import pytest

from ..errors import TagSyntaxError
from ..tags import TAG_KEY, BindingField, TagDescriptor, flag_name_from_field, render_literal


class Mode(Enum):
    FAST = 'fast'


@dataclass
class Tagged:
    port: int = field(
        default=0,
        metadata={'flag': "name=listen short=p default=8080 usage='TCP port to listen on'"}
    )
    secret: str = field(default='', metadata={'flag': '-'})
    plain: str = ''


def test_flag_name_from_field():
    assert flag_name_from_field('max_steps') == 'max-steps'
    assert flag_name_from_field('MaxSteps') == 'max-steps'
    assert flag_name_from_field('HTTPPort') == 'http-port'
    assert flag_name_from_field('v2_api') == 'v2-api'
    assert flag_name_from_field('class_') == 'class'
    assert flag_name_from_field('x') == 'x'


def test_parse_tag_string():
    tag = TagDescriptor.from_field(fields(Tagged)[0])
    assert tag.name == 'listen'
    assert tag.shorthand == 'p'
    assert tag.default == '8080'
    assert tag.usage == 'TCP port to listen on'
    assert tag.override is None
    assert not tag.skip
    assert tag.flag_name('port') == 'listen'
    assert tag.flag_name('port', prefix='http') == 'http-listen'

    assert TagDescriptor.from_field(fields(Tagged)[1]).skip
    assert TagDescriptor.from_field(fields(Tagged)[2]) == TagDescriptor()


def test_parse_tag_options():
    tag = TagDescriptor.parse('verbose', 'skip')
    assert tag.skip

    tag = TagDescriptor.parse('verbose', 'override hidden default=')
    assert tag.override == ''
    assert tag.override_name('verbose', 'app') == 'app-verbose'
    assert tag.hidden
    assert tag.default == ''

    tag = TagDescriptor.parse('level', 'override=log-level prefix=db')
    assert tag.override_name('level') == 'log-level'
    assert tag.prefix == 'db'

    assert TagDescriptor.parse('plain', None).override_name('plain') is None


@pytest.mark.parametrize(
    'tag', [
        "name='unterminated",
        'color=red',
        'loud',
        'short=pp',
        'name=a name=b',
        'name=',
        42,
    ]
)
def test_malformed_tags(tag):
    with pytest.raises(TagSyntaxError) as excinfo:
        TagDescriptor.parse('port', tag)

    assert excinfo.value.field_name == 'port'
    assert excinfo.value.tag == tag


def test_parse_tag_mapping():
    tag = TagDescriptor.parse(
        'tags', {
            'default': ['a', 'b'],
            'override': True,
            'hidden': True,
            'type': str.upper
        }
    )
    assert tag.default == 'a,b'
    assert tag.override == ''
    assert tag.hidden
    assert tag.type is str.upper

    assert TagDescriptor.parse('x', {'override': False}).override is None
    with pytest.raises(TagSyntaxError):
        TagDescriptor.parse('x', {'bogus': 1})
    with pytest.raises(TagSyntaxError):
        TagDescriptor.parse('x', {'type': 'int'})


@pytest.mark.parametrize('tag', [{'short': 1}, {'name': 2}, {'prefix': 3}, {'usage': 4}])
def test_non_string_tag_values(tag):
    with pytest.raises(TagSyntaxError):
        TagDescriptor.parse('port', tag)


def test_render_literal():
    assert render_literal('a') == 'a'
    assert render_literal(True) == 'true'
    assert render_literal(3) == '3'
    assert render_literal(Mode.FAST) == 'fast'
    assert render_literal(timedelta(seconds=90)) == '1m30s'
    assert render_literal([1, 2]) == '1,2'
    assert render_literal(['a,b', 'c']) == '"a,b",c'
    assert render_literal({'a': 1}) == 'a=1'


def test_binding_field():
    port = BindingField(default=8080, short='p', usage='The port.')
    assert port.default == 8080
    assert port.metadata[TAG_KEY] == {
        'default': 8080,
        'short': 'p',
        'usage': 'The port.'
    }

    tags = BindingField(default=['a'])
    assert tags.default is MISSING
    assert tags.default_factory() == ['a']
    assert tags.default_factory() is not tags.default_factory()

    empty = BindingField(override='port')
    assert empty.default is None
    assert empty.metadata[TAG_KEY] == {'override': 'port'}

    assert BindingField(skip=True).metadata[TAG_KEY] == {'skip': True}
