import pytest
from markupsafe import Markup

from sitewright.shortcodes import args_string, shortcode, shortcode_html, shortcodes


def test_args_string():
    assert args_string("bash") == '"bash"'
    assert args_string(src="/a.png", width=300, inline=True) == 'src="/a.png" width=300 inline=true'
    assert args_string(caption='say "hi"') == 'caption="say \\"hi\\""'
    with pytest.raises(ValueError):
        args_string("a", b="c")


def test_shortcode_without_content_has_no_closing_tag():
    result = shortcode("figure", src="/images/foo.png", alt="A nice figure")
    assert isinstance(result, Markup)
    assert result == '{{% figure src="/images/foo.png" alt="A nice figure" %}}'


def test_shortcode_with_content():
    assert shortcode("highlight", "bash", content="echo hello world;") == (
        '{{% highlight "bash" %}}\necho hello world;\n{{% /highlight %}}'
    )
    assert shortcode("note", content=["line one", "line two"]) == (
        "{{% note %}}\nline one\nline two\n{{% /note %}}"
    )


def test_shortcode_html():
    assert shortcode_html("myshortcode", content="My <strong>shortcode</strong>.") == (
        "{{< myshortcode >}}\nMy <strong>shortcode</strong>.\n{{< /myshortcode >}}"
    )
    with pytest.raises(ValueError):
        shortcode("x", type="rst")


def test_shortcodes():
    assert shortcodes("tweet", ["1", "2"]) == '{{% tweet "1" %}}\n{{% tweet "2" %}}'
    assert shortcodes("tweet", [], sep=" ") == ""
