from storefront.utils.templates import money


def test_money_formats_whole_and_fractional_amounts():
    assert money(297) == "$297"
    assert money(297.0) == "$297"
    assert money(19.5) == "$19.50"
    assert money(12000) == "$12,000"
    assert money(None) == "$0"
