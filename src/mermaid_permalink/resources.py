from importlib import resources


def load_index_html() -> str:
    with resources.files(__package__).joinpath("data/index.html").open("r", encoding="utf-8") as fh:
        return fh.read()
