# tinypcm

Small, dependency-free building blocks for PCM audio streams, mixer
controls and RIFF/WAVE files, plus the logic of four small audio tools
(capture, playback, device parameter reports and a mixer command line).

## What is inside

- `tinypcm.optparse`: a getopt-style parser, `OptionParser`, with
  GNU-style long options (`LongOption`, `ArgType`). Non-option arguments
  are moved behind the options while parsing, unless `permute` is false.
  Bad input raises `OptionError`, whose `errmsg` holds the message.
- `tinypcm.version`: `version_number` and `version_string` for a
  major/minor/patch triple, and the package's `VERSION` and `VERSION_STRING`.
- `tinypcm.pcm`: sample formats (`PcmFormat`), open flags (`PcmFlag`),
  states (`PcmState`), hardware parameters (`PcmParam`), stream settings
  (`PcmConfig`), bit masks (`PcmMask`), closed ranges (`Interval`), sets of
  supported parameters (`PcmParams`) and the stream itself (`Pcm`). Errors
  raise `PcmError`.
- `tinypcm.mixer`: control types (`MixerCtlType`), controls
  (`MixerControl`) with ranges, percentages, enumerated items and byte
  arrays, change events (`MixerCtlEvent`) and the `Mixer` that holds them.
  Errors raise `MixerError`.
- `tinypcm.wav`: `read_wav_header`, `build_wav_header`, per-channel
  average power (`channel_power`) and a text report (`format_wav_info`).
  Malformed files raise `WavError`.
- `tinypcm.capture`: `parse_capture_args`, `CaptureOptions`,
  `bits_to_format`, `capture_frames` and `finish_wav_capture`.
- `tinypcm.playback`: `parse_play_args`, `PlayCommand`,
  `signed_bits_to_format`, `resolve_stream_config`, `check_param`,
  `sample_is_playable` and `play_sample`. Errors raise `PlaybackError`.
- `tinypcm.pcminfo`: `parse_pcminfo_args`, `format_name`,
  `describe_params` and `describe_device`.
- `tinypcm.tinymix`: the mixer command line (`get`, `set`, `controls`,
  `contents`) as `run`, with its parts (`parse_options`, `get_control`,
  `format_control_values`, `list_controls`, `set_values`, `to_control_value`
  and others). Errors raise `MixerCommandError`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

Show the format of a WAV file and the average power of each channel:

```
tinywavinfo recording.wav
```

It prints the channel count, sample rate and bits per sample, then one
line per channel with its average power in dB, or `NO signal or ZERO
signal` for a silent channel. Only 16-bit and 32-bit samples are analysed.
Ctrl-C stops reading early; the figures then cover what was read.

## Library use

WAV headers:

```python
from tinypcm.wav import build_wav_header, read_wav_header

header = build_wav_header(2, 48000, 16, data_size)   # 44 bytes

with open("recording.wav", "rb") as stream:
    fmt, data_size = read_wav_header(stream)          # stream now at the samples
```

Option parsing:

```python
from tinypcm.optparse import OptionParser

parser = OptionParser(["prog", "-D", "1", "file.wav"], True)
while (opt := parser.parse("D:d:")) is not None:
    print(opt, parser.optarg)        # D 1
print(parser.arg())                  # file.wav
```

A `Pcm` moves interleaved frames through a binary stream: an output PCM
writes them to it, an input PCM reads them from it.

```python
import io
from tinypcm.pcm import Pcm, PcmConfig, PcmFlag

sink = io.BytesIO()
with Pcm(PcmConfig(channels=2, rate=48000), PcmFlag.OUT, sink) as pcm:
    pcm.writei(bytes(pcm.frames_to_bytes(256)))
```

Playing a WAV file into a PCM:

```python
from tinypcm.pcm import Pcm
from tinypcm.playback import parse_play_args, play_sample, resolve_stream_config

command = parse_play_args(["tinyplay", "song.wav"])
with open(command.filename, "rb") as stream:
    config, size = resolve_stream_config(command, stream)
    with Pcm(config, command.flags, sink) as pcm:
        played, left = play_sample(pcm, stream, size)
```

Capturing from an input PCM into a WAV file: leave room for the header,
copy the frames, then write the header.

```python
from tinypcm.capture import capture_frames, finish_wav_capture, parse_capture_args
from tinypcm.pcm import Pcm
from tinypcm.wav import WAV_HEADER_SIZE

options = parse_capture_args(["tinycap", "out.wav", "-t", "5"])
with open(options.filename, "wb") as out, Pcm(options.config, options.flags, source) as pcm:
    out.write(bytes(WAV_HEADER_SIZE))
    frames = capture_frames(pcm, out, options.rate, options.capture_time)
    finish_wav_capture(out, options, frames)
```

Running mixer commands against a `Mixer`:

```python
from tinypcm.mixer import Mixer, MixerControl, MixerCtlType
from tinypcm.tinymix import run

mixer = Mixer("card", [
    MixerControl("Master Volume", MixerCtlType.INT, [50, 50], minimum=0, maximum=100),
])
run(mixer, ["tinymix", "set", "Master Volume", "75"])
run(mixer, ["tinymix", "get", "Master Volume"])   # 75, 50 (range 0->100)
```

`run` also accepts a function that takes a card number and returns a
`Mixer`, or None when it cannot open one.

## What it does not do

The package does not talk to sound hardware. `Pcm` reads and writes a
Python binary stream, `Mixer` holds its controls in memory, and
`PcmParams` describes whatever ranges and masks it is given; nothing
discovers real sound cards or devices. For the same reason only
`tinywavinfo` is installed as a command: capture, playback, device
reports and mixer commands are library functions that need a `Pcm`,
`PcmParams` or `Mixer` supplied by the caller.