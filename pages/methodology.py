from dash import dcc, html


def layout():
    return html.Div(
        [
            html.H2("Methodology", style={"marginBottom": "16px"}),
            dcc.Markdown(
                """
Returns are computed with a fixed step over trading days: **1** for daily,
**5** for weekly and **21** for monthly bars. Each return is dated at the end
of its interval.

**Full Sample** computes one mean μ and one sample standard deviation σ over
every return of the loaded history, and scores each bar as `z = (r - μ) / σ`.

**Rolling Window** scores each bar against the *N* returns that precede it,
so a large move after a calm stretch stands out even if the whole history
was volatile. The first *N* bars use an expanding window that includes the
bar itself.

A bar with zero σ behind it scores 0. Bars with |z| at or above the
threshold are **signals**; bars beyond ±5σ are drawn truncated and marked
▲ / ▼.
"""
            ),
            html.H3("Resources", style={"marginTop": "24px"}),
            html.Ul(
                [
                    html.Li(
                        html.A(
                            "Yahoo Finance",
                            href="https://finance.yahoo.com",
                            target="_blank",
                        )
                    ),
                    html.Li(
                        html.A(
                            "yfinance documentation",
                            href="https://pypi.org/project/yfinance/",
                            target="_blank",
                        )
                    ),
                    html.Li(
                        html.A(
                            "Investopedia - Z-Score",
                            href="https://www.investopedia.com/terms/z/zscore.asp",
                            target="_blank",
                        )
                    ),
                ]
            ),
        ]
    )
