import functools
import json

import click

from .core import BucketController
from .exc import BucketError


def _bucket_errors(cb):

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except BucketError as ex:
            raise click.ClickException(str(ex)) from ex

    return _inner


@click.group
def main():
    pass


@main.command
def buckets():
    for name in BucketController().bucket_names():
        print(name)


@main.command
@click.argument("bucket_name")
@click.argument("remote_dir", default="")
@click.option("--detailed", is_flag=True, default=False)
@_bucket_errors
def ls(bucket_name, remote_dir, detailed):
    bucket = BucketController().get_bucket(bucket_name)
    if not detailed:
        for name in bucket.dir_list(remote_dir):
            print(name)
        return
    items = bucket.dir_list_detailed(remote_dir)
    if not items:
        return
    ml = max(len(n) for n in items.keys()) + 2
    fstr = "{: <" + str(ml) + "}{: <11}{: >12}  {}"
    for name, info in items.items():
        print(fstr.format(name, info.type.value, info.size, info.permissions))


@main.command
@click.argument("bucket_name")
@click.argument("local_file")
@click.argument("remote_file")
@_bucket_errors
def push(bucket_name, local_file, remote_file):
    bucket = BucketController().get_bucket(bucket_name)
    if not bucket.file_push(local_file, remote_file):
        raise click.ClickException(f"Could not push {local_file} to {remote_file}")
    print(f"Pushed {local_file} to {remote_file}")


@main.command
@click.argument("bucket_name")
@click.argument("remote_file")
@click.argument("local_file")
@_bucket_errors
def pull(bucket_name, remote_file, local_file):
    bucket = BucketController().get_bucket(bucket_name)
    if not bucket.file_pull(remote_file, local_file):
        raise click.ClickException(f"Could not pull {remote_file} to {local_file}")
    print(f"Pulled {remote_file} to {local_file}")


@main.command
@click.argument("bucket_name")
@click.argument("remote_path")
@click.option("--recursive", "-r", is_flag=True, default=False)
@_bucket_errors
def rm(bucket_name, remote_path, recursive):
    bucket = BucketController().get_bucket(bucket_name)
    if recursive:
        result = bucket.dir_delete(remote_path)
    else:
        result = bucket.file_delete(remote_path)
    if not result:
        raise click.ClickException(f"Could not delete {remote_path}")
    print(f"Deleted {remote_path}")


@main.command
@click.argument("bucket_name")
@click.argument("remote_dir")
@_bucket_errors
def mkdir(bucket_name, remote_dir):
    bucket = BucketController().get_bucket(bucket_name)
    if not bucket.dir_create(remote_dir):
        raise click.ClickException(f"Could not create {remote_dir}")
    print(f"Created {remote_dir}")


@main.command
@click.argument("bucket_name")
@click.argument("remote_file")
@_bucket_errors
def url(bucket_name, remote_file):
    print(BucketController().get_bucket(bucket_name).file_get_url(remote_file))


@main.command
@click.argument("bucket_name")
@click.argument("remote_path")
@_bucket_errors
def info(bucket_name, remote_path):
    file_info = BucketController().get_bucket(bucket_name).file_get_info(remote_path)
    if file_info is None:
        raise click.ClickException(f"Bucket [{bucket_name}] cannot describe single entries")
    print(json.dumps(file_info.to_dict(), indent=2))


def run():
    from .boot import init_bucket
    init_bucket("cli")
    main()
