"""Environment, file, listing and Node.js utilities, and helper application entry points."""