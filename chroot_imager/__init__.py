"""chroot-imager: build a bootable disk image from a bootstrapped chroot.

Pipeline:
- Probe host privileges and tools
- Select a Debian/Ubuntu suite and bootstrap it
- Install base packages, a desktop and operator-picked packages in a chroot
- Copy the tree into a GPT image (ESP + ext4 root) and install GRUB
- Unwind every mount and loop device on every exit path
"""

__all__ = []
