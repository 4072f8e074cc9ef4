#!/usr/bin/env python3
"""
RayForge - A Whitted-style Ray Tracer

Main entry point for rendering scenes.
"""

import argparse
import logging
import math
import os
import sys
import time

from rayforge.vec3 import Vec3, Color, Point3
from rayforge.transform import translation, scaling, rotation_x, rotation_y, rotation_z, view_transform
from rayforge.camera import Camera
from rayforge.shapes import Sphere, Plane, Cube, Cylinder, Cone
from rayforge.groups import Group, CSG
from rayforge.materials import Material
from rayforge.patterns import CheckersPattern, StripePattern, RingPattern, BlendedPattern
from rayforge.lights import PointLight
from rayforge.world import World
from rayforge.renderer import Renderer, RenderSettings
from rayforge.scene_parser import SceneParseError, load_scene


def create_demo_scene() -> World:
    """A checkered floor with a glass sphere, a mirror sphere and a hexagon of cones."""
    world = World()

    floor = Plane(material=Material(
        pattern=CheckersPattern(Color(0.9, 0.9, 0.9), Color(0.1, 0.1, 0.1)),
        specular=0.0,
        reflective=0.1
    ))
    world.add(floor)

    backdrop = Plane(
        translation(0, 0, 10) @ rotation_x(math.pi / 2),
        Material(
            pattern=BlendedPattern(
                StripePattern(Color(0.8, 0.3, 0.3), Color(0.9, 0.9, 0.9)),
                StripePattern(Color(0.3, 0.3, 0.8), Color(0.9, 0.9, 0.9), rotation_y(math.pi / 2))
            ),
            specular=0.0
        )
    )
    world.add(backdrop)

    glass = Sphere(translation(0, 1, 0), Material(
        color=Color(0.05, 0.05, 0.05), diffuse=0.1, shininess=300,
        reflective=0.9, transparency=0.9, refractive_index=1.5
    ))
    glass.casts_shadow = False
    world.add(glass)

    mirror = Sphere(
        translation(2.5, 0.75, 1) @ scaling(0.75, 0.75, 0.75),
        Material(color=Color(0.1, 0.1, 0.2), reflective=0.8, specular=1.0, shininess=300)
    )
    world.add(mirror)

    ringed = Sphere(
        translation(-2.5, 0.75, 1) @ scaling(0.75, 0.75, 0.75),
        Material(pattern=RingPattern(Color(1.0, 0.6, 0.1), Color(0.6, 0.2, 0.1), scaling(0.2, 0.2, 0.2)))
    )
    world.add(ringed)

    cones = Group(translation(0, 0, 3.5))
    for i in range(6):
        cone = Cone(
            rotation_y(i * math.pi / 3) @ translation(0, 0.6, 1.2) @ scaling(0.3, 0.6, 0.3),
            Material(color=Color(0.2, 0.7, 0.3)),
            minimum=-1.0, maximum=0.0, closed=True
        )
        cones.add_child(cone)
    world.add(cones)

    world.add_light(PointLight(Point3(-10, 10, -10), Color(0.9, 0.9, 0.9)))
    world.add_light(PointLight(Point3(10, 6, -10), Color(0.2, 0.2, 0.25)))

    return world


def create_csg_scene() -> World:
    """The classic CSG showpiece: a cube with a sphere carved out and a drilled hole."""
    world = World()

    world.add(Plane(material=Material(
        pattern=CheckersPattern(Color(0.8, 0.8, 0.8), Color(0.3, 0.3, 0.3)),
        specular=0.0
    )))

    red = Material(color=Color(0.9, 0.2, 0.2), reflective=0.2)
    blue = Material(color=Color(0.2, 0.3, 0.9))

    rounded = CSG.intersection(Cube(material=red), Sphere(scaling(1.35, 1.35, 1.35), red))
    drill = CSG.union(
        Cylinder(material=blue, minimum=-2, maximum=2, closed=True),
        Cylinder(rotation_z(math.pi / 2), blue, minimum=-2, maximum=2, closed=True)
    )
    body = CSG.difference(
        rounded,
        Group(scaling(0.5, 1, 0.5), [drill]),
        translation(0, 1, 0) @ rotation_y(math.pi / 6)
    )
    world.add(body)

    world.add_light(PointLight(Point3(-10, 10, -10), Color(1, 1, 1)))

    return world


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='RayForge - A Whitted-style Ray Tracer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --scene demo --output render.png
  python main.py --scene csg --width 800 --height 600 --output csg.ppm
  python main.py --scene scenes/teapot.yaml --depth 8 --output teapot.png
        '''
    )

    parser.add_argument('--scene', type=str, default='demo',
                        help='Built-in scene (demo, csg) or path to a YAML/JSON scene file')
    parser.add_argument('--width', type=int, default=None, help='Image width (default: 400, or from scene file)')
    parser.add_argument('--height', type=int, default=None, help='Image height (default: 200, or from scene file)')
    parser.add_argument('--depth', type=int, default=None, help='Max reflection/refraction depth (default: 5)')
    parser.add_argument('--threads', type=int, default=None, help='Number of threads (0=auto)')
    parser.add_argument('--output', type=str, default='output/render.png', help='Output filename (.ppm or any Pillow format)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Print header
    print("=" * 60)
    print("RayForge Ray Tracer")
    print("=" * 60)
    print(f"CPU Cores: {os.cpu_count()}")

    # Create scene
    print(f"\nCreating scene: {args.scene}")
    if args.scene in ('demo', 'csg'):
        world = create_demo_scene() if args.scene == 'demo' else create_csg_scene()
        width = args.width or 400
        height = args.height or 200
        camera = Camera(width, height, math.pi / 3, view_transform(
            Point3(0, 2.5, -6), Point3(0, 1, 0), Vec3(0, 1, 0)
        ))
        settings = RenderSettings()
    else:
        try:
            world, camera, settings = load_scene(args.scene)
        except SceneParseError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if args.width or args.height:
            camera = Camera(
                args.width or camera.hsize,
                args.height or camera.vsize,
                camera.field_of_view,
                camera.transform
            )

    if args.depth is not None or args.threads is not None:
        settings = RenderSettings(
            max_depth=settings.max_depth if args.depth is None else args.depth,
            tile_size=settings.tile_size,
            num_threads=settings.num_threads if args.threads is None else args.threads,
            gamma=settings.gamma
        )
        world.max_depth = settings.max_depth

    print(f"  Objects in scene: {len(world)}")
    print(f"  Lights: {len(world.lights)}")

    print(f"\nRender Settings:")
    print(f"  Resolution: {camera.hsize}x{camera.vsize}")
    print(f"  Max Depth: {settings.max_depth}")
    print(f"  Threads: {settings.num_threads}")

    # Create renderer
    renderer = Renderer(settings)

    # Progress tracking
    last_progress = [0]

    def progress_callback(progress: float):
        pct = int(progress * 100)
        if pct > last_progress[0]:
            last_progress[0] = pct
            bar_len = 40
            filled = int(bar_len * progress)
            bar = '█' * filled + '░' * (bar_len - filled)
            print(f'\rRendering: [{bar}] {pct}%', end='', flush=True)

    renderer.set_progress_callback(progress_callback)

    # Render
    print("\nRendering...")
    start_time = time.time()

    image = renderer.render(world, camera)

    elapsed = time.time() - start_time
    print(f"\nRender completed in {elapsed:.2f} seconds")
    print(f"  Primary rays per second: {(camera.hsize * camera.vsize) / max(elapsed, 1e-9):.0f}")

    print(f"\nSaving to: {args.output}")
    renderer.save_image(image, args.output)

    print("\nDone!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
