import pytest


@pytest.fixture
def bin_dir(tmp_path):
    d = tmp_path / 'bin'
    d.mkdir()
    return d


@pytest.fixture
def search_path(bin_dir):
    return str(bin_dir)


@pytest.fixture
def make_binary():
    def make(directory, name, mode=0o755):
        path = directory / name
        path.write_text('#!/bin/sh\nexit 0\n')
        path.chmod(mode)
        return path

    return make
