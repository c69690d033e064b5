import random
from xml.etree import ElementTree

import pytest

from winremote_client import ErrorKind, ProtocolError
from winremote_client.parser import (
    decode_clixml,
    encode_clixml,
    error_message,
    is_clixml,
    parse_json_output,
    unescape_clixml,
)

POWERSHELL_STDERR = (
    "#< CLIXML\r\n"
    '<Objs Version="1.1.0.1" xmlns="http://schemas.microsoft.com/powershell/2004/04">'
    '<Obj S="progress" RefId="0"><TN RefId="0"><T>System.Management.Automation.PSCustomObject</T>'
    "<T>System.Object</T></TN><MS><I64 N=\"SourceId\">1</I64><PR N=\"Record\">"
    "<AV>Preparing modules for first use.</AV><AI>0</AI><Nil /><PI>-1</PI><PC>-1</PC>"
    "<T>Completed</T><SR>-1</SR><SD> </SD></PR></MS></Obj>"
    "<S S=\"Error\">Get-Item : Cannot find path 'C:\\missing' because it does not exist._x000D__x000A_</S>"
    '<S S="Error">At line:1 char:1_x000D__x000A_</S>'
    '<S S="Warning">this is only a warning_x000D__x000A_</S>'
    '<S S="verbose">chatty_x000D__x000A_</S>'
    "</Objs>"
)


def test_decode_extracts_error_stream_only() -> None:
    assert decode_clixml(POWERSHELL_STDERR) == (
        "Get-Item : Cannot find path 'C:\\missing' because it does not exist.\nAt line:1 char:1"
    )


def test_plain_text_is_passed_through_unmodified() -> None:
    text = "  bash: Get-Item: command not found\n"
    assert not is_clixml(text)
    assert decode_clixml(text) == text


def test_malformed_clixml_is_a_protocol_error() -> None:
    broken = "#< CLIXML\r\n<Objs><S S=\"Error\">unterminated"
    with pytest.raises(ProtocolError) as excinfo:
        decode_clixml(broken)
    assert excinfo.value.kind is ErrorKind.PROTOCOL
    assert excinfo.value.context == broken
    assert isinstance(excinfo.value.__cause__, ElementTree.ParseError)


def test_decode_handles_consecutive_envelopes() -> None:
    first = encode_clixml("first failure")
    second = encode_clixml("second failure")
    assert decode_clixml(first + "\r\n" + second) == "first failure\nsecond failure"


def test_decode_without_error_nodes_is_empty() -> None:
    progress_only = (
        '#< CLIXML\r\n<Objs Version="1.1.0.1" xmlns="http://schemas.microsoft.com/powershell/2004/04">'
        '<Obj S="progress" RefId="0"><MS><I64 N="SourceId">1</I64></MS></Obj></Objs>'
    )
    assert decode_clixml(progress_only) == ""


@pytest.mark.parametrize(
    ("escaped", "expected"),
    [
        ("one_x000D__x000A_two", "one\ntwo"),
        ("tab_x0009_stop", "tab\tstop"),
        ("_x005F_x000D_ is literal", "_x000D_ is literal"),
        ("smile _xD83D__xDE00_", "smile \U0001F600"),
        ("no_escape_here", "no_escape_here"),
    ],
)
def test_unescape_clixml(escaped: str, expected: str) -> None:
    assert unescape_clixml(escaped) == expected


@pytest.mark.parametrize(
    "message",
    [
        "Cannot find path 'C:\\missing' because it does not exist.",
        "New-LocalGroup : Group Test already exists.\nAt line:1 char:1\n+ New-LocalGroup -Name 'Test'",
        "literal _x000D__x000A_ text survives",
        "markup <b> & \"quotes\"",
        "tabs\tinside",
        "  indented",
        "\tleading tab",
        "trailing newline\n",
        "windows\r\nline endings\r\n",
        "lone\rreturn",
        "",
    ],
)
def test_clixml_round_trip(message: str) -> None:
    encoded = encode_clixml(message)
    assert encoded.startswith("#< CLIXML")
    assert "\n" not in encoded.split("\r\n", 1)[1]
    assert decode_clixml(encoded) == message


def test_clixml_round_trip_fuzz() -> None:
    rng = random.Random(1234)
    alphabet = "ab_xX0D9AF \t\r\n<&>'\"\\\x01\x7f\u00e9"
    for _ in range(500):
        message = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 40)))
        assert decode_clixml(encode_clixml(message)) == message, repr(message)


def test_error_message_falls_back_for_empty_text() -> None:
    assert error_message("") == "Error occurred"
    assert error_message(POWERSHELL_STDERR).startswith("Get-Item : Cannot find path")
    assert error_message(encode_clixml("  Access is denied.\n")) == "Access is denied."


def test_parse_json_output() -> None:
    assert parse_json_output('{"Name":"Users"}') == {"Name": "Users"}
    assert parse_json_output("  \r\n") is None
    with pytest.raises(ProtocolError):
        parse_json_output("Users")
