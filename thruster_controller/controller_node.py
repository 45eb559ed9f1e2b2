import rclpy
from rclpy.node import Node
from rclpy.duration import Duration
from rclpy.logging import LoggingSeverity
from rclpy.parameter import Parameter
from rclpy.time import Time
from rcl_interfaces.msg import SetParametersResult
from sensor_msgs.msg import Imu, JointState
from geometry_msgs.msg import Accel
from tf2_ros import TransformException
from tf2_ros.buffer import Buffer
from tf2_ros.transform_listener import TransformListener
from thruster_controller.controller import ThrusterController
from thruster_controller.geometry import GeometryLookupError, resolve_geometry
from thruster_controller.vehicle import load_vehicle_config
import os
from ament_index_python.packages import PackageNotFoundError, get_package_share_directory

LOG_LEVELS = {
    'debug': LoggingSeverity.DEBUG,
    'info': LoggingSeverity.INFO,
    'warn': LoggingSeverity.WARN,
    'warning': LoggingSeverity.WARN,
    'error': LoggingSeverity.ERROR,
    'fatal': LoggingSeverity.FATAL,
}


class ThrusterControllerNode(Node):
    def __init__(self):
        super().__init__('thruster_controller')

        # Declare parameters
        self.declare_parameter('vehicle_file', 'vehicle.yaml')
        self.declare_parameter('geometry_source', 'tf')  # 'tf' or 'config'
        self.declare_parameter('reference_frame', 'base_link')
        self.declare_parameter('sensor_frame', 'imu_one_link')
        self.declare_parameter('lookup_timeout', 10.0)
        self.declare_parameter('log_level', 'info')

        self._apply_log_level(self.get_parameter('log_level').get_parameter_value().string_value)
        self.add_on_set_parameters_callback(self._on_set_parameters)

        # Load vehicle constants from YAML
        vehicle_file = self.get_parameter('vehicle_file').get_parameter_value().string_value
        try:
            pkg_dir = get_package_share_directory('thruster_controller')
            yaml_path = os.path.join(pkg_dir, 'config', vehicle_file)
        except PackageNotFoundError:
            yaml_path = os.path.join(
                os.path.dirname(__file__), '..', 'config', vehicle_file
            )

        self.get_logger().info(f"Loading vehicle config from: {yaml_path}")
        self.vehicle = load_vehicle_config(yaml_path)
        self.get_logger().info(
            f"mass={self.vehicle.rigid_body.mass:.4f} kg, "
            f"inertia={self.vehicle.rigid_body.inertia.tolist()}, "
            f"thrust limits=[{self.vehicle.limits.min_thrust}, {self.vehicle.limits.max_thrust}] N"
        )

        # Thruster positions, resolved once
        self.reference_frame = self.get_parameter('reference_frame').get_parameter_value().string_value
        geometry_source = self.get_parameter('geometry_source').get_parameter_value().string_value
        if geometry_source.lower() == 'config':
            if self.vehicle.geometry is None:
                raise ValueError(f"geometry_source is 'config' but {vehicle_file} has no thrusters section")
            geometry = self.vehicle.geometry
        else:
            geometry = self._lookup_geometry()

        self.controller = ThrusterController(geometry, config=self.vehicle, logger=self.get_logger())
        self.controller.allocator.log_geometry()

        # Publisher for thruster forces
        self.thrust_pub = self.create_publisher(JointState, 'command/thrust', 1)

        # Subscribers
        self.create_subscription(Imu, 'state/imu', self.imu_callback, 1)
        self.create_subscription(Accel, 'command/accel', self.accel_callback, 1)

    def _lookup_geometry(self):
        """Resolve thruster frames from tf, blocking up to lookup_timeout per frame."""
        timeout = self.get_parameter('lookup_timeout').get_parameter_value().double_value
        sensor_frame = self.get_parameter('sensor_frame').get_parameter_value().string_value

        tf_buffer = Buffer()
        tf_listener = TransformListener(tf_buffer, self, spin_thread=True)

        def lookup(frame, timeout_sec):
            try:
                tform = tf_buffer.lookup_transform(
                    self.reference_frame, frame, Time(),
                    timeout=Duration(seconds=timeout_sec)
                )
            except TransformException as e:
                raise GeometryLookupError(frame, str(e)) from e
            t = tform.transform.translation
            return [t.x, t.y, t.z]

        try:
            return resolve_geometry(lookup, timeout_sec=timeout, sensor_frame=sensor_frame,
                                    logger=self.get_logger())
        finally:
            tf_listener.unregister()

    def imu_callback(self, msg: Imu):
        """Latest orientation and angular velocity"""
        q = msg.orientation
        w = msg.angular_velocity
        self.controller.on_inertial_sample(
            [q.x, q.y, q.z, q.w],
            [w.x, w.y, w.z]
        )

    def accel_callback(self, msg: Accel):
        """Solve and publish one thrust command per acceleration command"""
        solution = self.controller.on_command(
            [msg.linear.x, msg.linear.y, msg.linear.z],
            [msg.angular.x, msg.angular.y, msg.angular.z]
        )

        thrust = JointState()
        thrust.header.stamp = self.get_clock().now().to_msg()
        thrust.header.frame_id = self.reference_frame
        forces = solution.as_dict()
        thrust.name = list(forces.keys())
        thrust.effort = list(forces.values())
        self.thrust_pub.publish(thrust)

    def _apply_log_level(self, level: str):
        severity = LOG_LEVELS.get(level.lower())
        if severity is None:
            self.get_logger().warning(f"Unknown log_level '{level}', keeping current level")
            return False
        self.get_logger().set_level(severity)
        return True

    def _on_set_parameters(self, params):
        for param in params:
            if param.name == 'log_level':
                if param.type_ != Parameter.Type.STRING or not self._apply_log_level(param.value):
                    return SetParametersResult(successful=False, reason='invalid log_level')
        return SetParametersResult(successful=True)


def main(args=None):
    rclpy.init(args=args)
    try:
        node = ThrusterControllerNode()
    except GeometryLookupError as e:
        rclpy.logging.get_logger('thruster_controller').fatal(str(e))
        rclpy.shutdown()
        raise
    rclpy.spin(node)
    node.destroy_node()
    rclpy.shutdown()
