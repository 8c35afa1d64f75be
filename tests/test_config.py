"""
to run this test you may need to [ pip install -e .[dev] ]
$ pytest -vs tests/test_config.py
"""
import pytest
import yaml

from seisxcorrelation.config import Config, ConfigException, read_list


@pytest.fixture
def config_file(params_dict, random_filename):
    def make_config_file(**overrides):
        d = dict(params_dict)
        d.update(overrides)
        fn = random_filename('.yaml')
        with open(fn, 'w') as f:
            yaml.dump(d, f)
        return fn
    return make_config_file


def test_load(config_file, params_dict):
    cf = Config(config_file())

    for k, v in params_dict.items():
        assert getattr(cf, k) == v
    assert cf.as_dict() == params_dict


def test_missing_key(params_dict):
    del params_dict['maxtimelag']
    with pytest.raises(ConfigException) as e:
        Config.from_dict(params_dict)
    assert 'maxtimelag' in str(e.value)


def test_high_order_keys_required(params_dict):
    Config.from_dict(params_dict)
    with pytest.raises(ConfigException):
        Config.from_dict(params_dict, high_order=True)


@pytest.mark.parametrize('key, value', [('corrmethod', 'xcorr'),
                                        ('stacktype', 'median'),
                                        ('time_norm', 'clip'),
                                        ('corrtype', ['acorr', 'zcorr']),
                                        ('corrtype', []),
                                        ('freqmin', 1.0),
                                        ('cc_len', 7200),
                                        ('maxtimelag', 0)])
def test_invalid_values(config_file, key, value):
    with pytest.raises(ConfigException):
        Config(config_file(**{key: value}))


def test_corrtype_string(params_dict):
    params_dict['corrtype'] = 'xcorr'
    assert Config.from_dict(params_dict).corrtype == ['xcorr']


def test_to_samples(high_order_params_dict):
    high_order_params_dict['fs'] = 20.
    cf = Config.from_dict(high_order_params_dict, high_order=True)

    assert cf.to_samples(10) == 10
    assert cf.to_samples(10.) == 200
    assert cf.to_samples(0.26) == 5


def test_read_list(random_filename):
    fn = random_filename('.txt')
    with open(fn, 'w') as f:
        f.write('XX.A..BHZ\n\nXX.B..BHZ  \n')

    assert read_list(fn) == ['XX.A..BHZ', 'XX.B..BHZ']
    assert read_list(['XX.A..BHZ']) == ['XX.A..BHZ']
    with pytest.raises(ConfigException):
        read_list(fn + '.missing')


def test_lists_from_files(high_order_params_dict, random_filename):
    fn = random_filename('.txt')
    with open(fn, 'w') as f:
        f.write('XX.A..BHZ\n')
    high_order_params_dict['allowable_vs'] = fn

    cf = Config.from_dict(high_order_params_dict, high_order=True)
    assert cf.allowable_vs == ['XX.A..BHZ']
