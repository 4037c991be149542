import pytest

from nota_entrada.adapters.parsers import (
    exibir_imei,
    formatar_imei,
    imei_valido,
    normalizar_imei,
    parse_quantidade,
    parse_valor_brl,
)


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("35-209900-176148-1", "352099001761481"),
        (" 352099 001761481 ", "352099001761481"),
        ("abc", None),
        ("", None),
        (None, None),
    ],
)
def test_normalizar_imei(txt, esperado):
    assert normalizar_imei(txt) == esperado


@pytest.mark.parametrize(
    "txt,ok",
    [
        ("352099001761481", True),
        ("35-209900-176148-1", True),
        ("35209900176148", False),
        ("3520990017614810", False),
        (None, False),
    ],
)
def test_imei_valido(txt, ok):
    assert imei_valido(txt) is ok


def test_formatar_e_exibir_imei():
    assert formatar_imei("352099001761481") == "35-209900-176148-1"
    assert formatar_imei("3520") == "35-20"
    assert exibir_imei("352099001761481") == "35-209900-176148-1"
    assert exibir_imei("123") == "123"
    assert exibir_imei(None) == "-"


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("R$ 1.234,56", 1234.56),
        ("1234.56", 1234.56),
        ("3.500", 3500.0),
        ("1.234.567", 1234567.0),
        ("0,99", 0.99),
        (250, 250.0),
        ("", None),
        ("abc", None),
        (None, None),
    ],
)
def test_parse_valor_brl(txt, esperado):
    assert parse_valor_brl(txt) == esperado


@pytest.mark.parametrize(
    "txt,esperado",
    [
        ("3", 3),
        ("3 UN", 3),
        (5, 5),
        (2.0, 2),
        (2.5, None),
        ("1,5", None),
        ("", None),
        (True, None),
        (None, None),
    ],
)
def test_parse_quantidade(txt, esperado):
    assert parse_quantidade(txt) == esperado
